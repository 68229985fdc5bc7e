#!/usr/bin/env python3
"""
Create the canteen admin account if it does not exist yet.

Credentials come from ADMIN_EMAIL / ADMIN_PASSWORD / ADMIN_NAME. Safe to run
on every deploy.
"""

import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.config import settings
from core.database import SessionLocal, init_db
from modules.auth.services.auth_service import AuthService


def main():
    if settings.auto_create_tables:
        init_db()

    db = SessionLocal()
    try:
        admin = AuthService(db).ensure_admin_account(
            email=settings.admin_email,
            password=settings.admin_password,
            name=settings.admin_name,
        )
        print(f"Admin account ready: {admin.email} (id={admin.id})")
    finally:
        db.close()


if __name__ == "__main__":
    main()
