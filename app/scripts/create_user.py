"""
Create an account (e.g. the first admin). Run from project root:
  python -m app.scripts.create_user EMAIL PASSWORD FIRST_NAME LAST_NAME [role]
Example:
  python -m app.scripts.create_user admin@example.com 'S3cure!Pass' Ada Admin admin
"""
import argparse
import sys

from app.core.database import SessionLocal
from app.core.security import check_password_strength, hash_password
from app.models.user import ROLE_USER, ROLES, User


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a Stratdesk account from the command line.")
    parser.add_argument("email", help="Account e-mail (stored lower-cased)")
    parser.add_argument("password", help="8-128 chars with lower, upper, digit and symbol")
    parser.add_argument("first_name")
    parser.add_argument("last_name")
    parser.add_argument("role", nargs="?", default=ROLE_USER, choices=sorted(ROLES))
    parser.add_argument("--verified", action="store_true", help="Mark the e-mail as verified")
    args = parser.parse_args(argv)

    email = args.email.strip().lower()
    if "@" not in email or len(email) > 255:
        print("Invalid email address.", file=sys.stderr)
        return 1
    try:
        check_password_strength(args.password)
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        existing = db.query(User).filter(User.email == email).first()
        if existing:
            print(f"User '{email}' already exists.", file=sys.stderr)
            return 1
        user = User(
            email=email,
            first_name=args.first_name.strip(),
            last_name=args.last_name.strip(),
            password_hash=hash_password(args.password),
            role=args.role,
            is_email_verified=args.verified,
            failed_login_attempts=0,
            profile={},
        )
        db.add(user)
        db.commit()
        print(f"Created user '{email}' with role '{args.role}'.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
