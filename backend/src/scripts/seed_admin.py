#!/usr/bin/env python3
"""
Seed an administrator for initial deployment.

Creates (or promotes) the admin user that the video importer authenticates
as, and optionally prints a Bearer access token for it. It is idempotent -
running it multiple times will not create duplicate users.

Usage:
    python -m backend.src.scripts.seed_admin --email "admin@example.com" [--name "Admin"] [--issue-token]

Examples:
    # Create the importer account and print a token
    python -m backend.src.scripts.seed_admin -e "importer@fanhub.example" --issue-token
"""

import argparse
import signal
import sys
from typing import Optional, Tuple


def signal_handler(signum, frame):
    """Handle CTRL+C gracefully."""
    print("\n\nOperation interrupted by user.")
    sys.exit(130)


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Seed an administrator for the FanHub notifications backend.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "-e", "--email",
        required=True,
        help="Email address of the admin user"
    )
    parser.add_argument(
        "-n", "--name",
        default=None,
        help="Display name"
    )
    parser.add_argument(
        "--issue-token",
        action="store_true",
        help="Print a Bearer access token for the admin (requires JWT_SECRET_KEY)"
    )

    return parser.parse_args(argv)


def validate_email(email: str) -> bool:
    """Basic email validation."""
    if not email or "@" not in email:
        return False
    local, domain = email.rsplit("@", 1)
    return bool(local and domain and "." in domain)


def seed_admin(db, email: str, display_name: Optional[str] = None) -> Tuple[object, bool]:
    """
    Create the admin user, or promote an existing user with that email.

    Returns:
        Tuple of (user, created)
    """
    from backend.src.models import User

    user = db.query(User).filter(User.email == email).first()
    if user is not None:
        changed = False
        if not user.is_admin:
            user.is_admin = True
            changed = True
        if not user.is_active:
            user.is_active = True
            changed = True
        if changed:
            db.commit()
            db.refresh(user)
        return user, False

    user = User(email=email, display_name=display_name, is_admin=True, is_active=True)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user, True


def main(argv=None):
    """Main entry point."""
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    args = parse_args(argv)
    email = args.email.strip().lower()

    if not validate_email(email):
        print(f"Error: Invalid email format: {args.email}")
        sys.exit(1)

    # Import here to avoid loading database during argument parsing
    from sqlalchemy.exc import SQLAlchemyError

    from backend.src.config.settings import get_settings
    from backend.src.db.database import SessionLocal
    from backend.src.services.exceptions import ValidationError
    from backend.src.services.token_service import TokenService

    db = SessionLocal()
    try:
        user, created = seed_admin(db, email, args.name)
        print(f"[{'CREATED' if created else 'EXISTS'}] Admin: {user.email}")
        print(f"  GUID: {user.guid}")

        if args.issue_token:
            settings = get_settings()
            service = TokenService(
                db, settings.jwt_secret_key, settings.jwt_token_expiry_minutes
            )
            try:
                token = service.create_access_token(user)
            except ValidationError as e:
                print(f"\n[ERROR] Cannot issue token: {e}")
                sys.exit(1)
            print(f"\nAccess token (expires in {settings.jwt_token_expiry_minutes} min):")
            print(token)
    except SQLAlchemyError as e:
        db.rollback()
        print(f"\n[ERROR] Unexpected database error: {e}")
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
