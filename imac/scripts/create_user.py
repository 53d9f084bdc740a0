"""
Create a user (e.g. the first administrator). Run from project root:
  python -m imac.scripts.create_user EMAIL PASSWORD NAME [role]
Example:
  python -m imac.scripts.create_user admin@example.com 'Str0ng!Pass' "Plant Admin" ADMIN
"""
import argparse
import sys

from imac.core.config import get_settings
from imac.core.database import SessionLocal
from imac.models import Role
from imac.services.auth import AuthService
from imac.services.errors import AuthError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create an IMAC user account.")
    parser.add_argument("email", help="Account email (stored lowercase)")
    parser.add_argument("password", help="Password (must satisfy the password policy)")
    parser.add_argument("name", help="Display name")
    parser.add_argument(
        "role",
        nargs="?",
        default=Role.ESPECTADOR.value,
        choices=[r.value for r in Role],
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    name = " ".join(args.name.split())
    if len(name) < 2 or len(name) > 100:
        print("Name must be 2-100 characters.", file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        service = AuthService(db, get_settings())
        try:
            user = service.register(args.email, args.password, name, Role(args.role))
        except AuthError as e:
            print(e.message, file=sys.stderr)
            return 1
        print(f"Created user '{user.email}' (id={user.id}) with role '{user.role.value}'.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
