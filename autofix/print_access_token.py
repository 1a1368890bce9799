"""Print a bearer token for an existing user to stdout.

Usage:
    python -m autofix.print_access_token admin@autofix.com
"""
import sys

from autofix.auth.jwt_handler import create_access_token
from autofix.database import SessionLocal
from autofix.models.user import User


def main(argv: list[str] | None = None) -> None:
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 1:
        print("Usage: python -m autofix.print_access_token <email>", file=sys.stderr)
        sys.exit(2)

    email = args[0].strip().lower()
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email).first()
    finally:
        db.close()

    if user is None:
        print(f"No user registered with {email}", file=sys.stderr)
        sys.exit(1)

    print(create_access_token(subject=user.email))


if __name__ == "__main__":
    main()
