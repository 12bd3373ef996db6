# create_admin.py

import os
import sys
from getpass import getpass

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import func, select  # noqa: E402
from werkzeug.security import generate_password_hash  # noqa: E402

from app import app  # noqa: E402
from membership_app.models import User, db  # noqa: E402


def create_admin():
    with app.app_context():
        username = input("Enter username: ").strip()
        email = input("Enter email (typed again to confirm every CSV import): ").strip()

        if db.session.execute(select(User).filter_by(username=username)).scalar_one_or_none():
            print("Error: Username already exists.")
            sys.exit(1)

        if db.session.execute(select(User).where(func.lower(User.email) == email.lower())).scalar_one_or_none():
            print("Error: Email already exists.")
            sys.exit(1)

        password = getpass("Enter password: ")
        password2 = getpass("Confirm password: ")

        if password != password2:
            print("Error: Passwords do not match.")
            sys.exit(1)

        if not password:
            print("Error: Password cannot be empty.")
            sys.exit(1)

        admin_user, error = User.safe_create(
            username=username,
            email=email,
            password_hash=generate_password_hash(password),
            is_active=True,
            is_admin=True,
        )

        if error:
            print(f"Error creating admin account: {error}")
            sys.exit(1)
        else:
            print("✅ Admin account created successfully!")
            print(f"   Username: {admin_user.username}")
            print(f"   Email: {admin_user.email}")
            print(f"   Active: {admin_user.is_active}")
            print("\nNote: admins can upload GivingFuel exports, run Donorbox backfills and enter manual payments.")


if __name__ == "__main__":
    create_admin()
