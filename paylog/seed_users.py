"""
Database seeding script for the initial administrators.

Creates a SUPER_ADMIN and an ADMIN user (admin roles cannot be
registered through the API) and the default payment types. Run once
after the database is reachable:

    python -m paylog.seed_users
"""

import asyncio

from sqlalchemy import select

from paylog.app.db.session import AsyncSessionLocal, engine, Base
from paylog.app.models.user import User
from paylog.app.models.enums import UserRole
from paylog.app.core.security import get_password_hash

# Register remaining tables before create_all
from paylog.app.models import (  # noqa: F401
    audit_log, vendor, entity, invoice_profile, invoice, payment, credit_note
)
from paylog.app.models.payment_type import PaymentType

SEED_USERS = [
    ("superadmin", "superadmin@paylog.local", "Super Admin", "superadmin123", UserRole.SUPER_ADMIN),
    ("admin", "admin@paylog.local", "Admin", "admin123", UserRole.ADMIN),
]

SEED_PAYMENT_TYPES = [
    ("Cash", "Cash payment", False),
    ("Cheque", "Cheque payment", True),
    ("Bank Transfer", "Wire transfer or bank transfer", True),
    ("Credit Card", "Credit card payment", False),
    ("UPI", "UPI payment", True),
]


async def seed_users():
    """Create missing seed users and payment types, leaving existing ones untouched."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("🌱 Starting user seeding...")

        for username, email, full_name, password, role in SEED_USERS:
            result = await db.execute(select(User).where(User.username == username))
            if result.scalar_one_or_none():
                print(f"ℹ️  {role.value} user '{username}' already exists, skipping")
                continue

            db.add(User(
                email=email,
                username=username,
                full_name=full_name,
                hashed_password=get_password_hash(password),
                role=role,
                is_active=True
            ))
            print(f"✅ Created {role.value} user (username: {username}, password: {password})")

        for name, description, requires_reference in SEED_PAYMENT_TYPES:
            result = await db.execute(select(PaymentType).where(PaymentType.name == name))
            if result.scalar_one_or_none():
                continue
            db.add(PaymentType(name=name, description=description, requires_reference=requires_reference))
            print(f"✅ Created payment type '{name}'")

        await db.commit()

    print("\n🎉 User seeding completed")
    print("Note: STANDARD_USER accounts register via POST /v1/auth/register")


if __name__ == "__main__":
    asyncio.run(seed_users())
