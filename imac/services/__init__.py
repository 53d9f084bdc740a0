"""Domain services: password policy, tokens, stores and the session service."""
