"""
Create a user, e.g. the first admin (registration over HTTP always creates role 'user').
Run from project root:
  python -m app.scripts.create_user EMAIL USERNAME PASSWORD [role]
Example:
  python -m app.scripts.create_user admin@example.com admin 'Your-secure-passw0rd' admin
"""
import argparse
import sys

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.core.errors import UserExistsError
from app.core.security import PasswordHasher, email_errors, password_policy_errors, username_errors
from app.models import Role
from app.services.users import UserStore


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a user with an explicit role.")
    parser.add_argument("email", help="Email address")
    parser.add_argument("username", help="Username (3-50 letters, digits, underscores)")
    parser.add_argument("password", help="Password (must satisfy the password policy)")
    parser.add_argument("role", nargs="?", default=Role.USER.value, choices=[r.value for r in Role])
    parser.add_argument("--display-name", default=None, help="Optional display name")
    args = parser.parse_args(argv)

    settings = get_settings()
    username = args.username.strip()
    errors = (
        username_errors(username)
        + email_errors(args.email.strip())
        + password_policy_errors(args.password, settings)
    )
    if errors:
        for error in errors:
            print(f"{error.field}: {error.message}", file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        store = UserStore(db)
        if store.exists(args.email, username):
            print(f"User '{username}' or email '{args.email}' already exists.", file=sys.stderr)
            return 1
        try:
            store.create(
                email=args.email,
                username=username,
                password_hash=PasswordHasher(settings.BCRYPT_ROUNDS).hash(args.password),
                display_name=args.display_name,
                role=Role(args.role),
            )
        except UserExistsError as e:
            print(e.message, file=sys.stderr)
            return 1
        db.commit()
        print(f"Created user '{username}' with role '{args.role}'.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
