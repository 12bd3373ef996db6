# scripts/init_database.py

"""
Database initialization script.
Creates the members, payments, users and admin_logs tables.
"""

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import inspect  # noqa: E402

from app import app  # noqa: E402
from membership_app.models import db  # noqa: E402


def init_database():
    with app.app_context():
        print("Creating database tables...")
        db.create_all()
        tables = sorted(inspect(db.engine).get_table_names())
        print(f"Tables present: {', '.join(tables)}")

        print("\nDatabase initialization complete!")
        print("\nNext steps:")
        print("  1. Create an admin user: python scripts/create_admin.py")
        print("  2. Point the provider webhooks at /.webconnex/new-member, /.webconnex/payment-success")
        print("     and /.donorbox/new-donation")
        print("  3. Catch up on missed donations: flask payments backfill-donorbox --date-from YYYY-MM-DD")


if __name__ == "__main__":
    init_database()
