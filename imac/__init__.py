"""IMAC production tracking: authentication and session lifecycle backend."""
