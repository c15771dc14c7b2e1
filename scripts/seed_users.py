#!/usr/bin/env python3
"""
Seed Script for Demo Users

Creates one directory user per role so deletion notices have ADMIN recipients
and prints a bearer token for each, signed with the configured SECRET_KEY.
Tokens are normally issued by the external token service; these are for local
development only.

Run with: python scripts/seed_users.py
"""

import asyncio
from datetime import timedelta

from sqlalchemy import select

from shiprepair_erp.api.deps import create_access_token
from shiprepair_erp.config import settings
from shiprepair_erp.database import async_session_maker, init_db
from shiprepair_erp.models.user import User
from shiprepair_erp.security.rbac import Role


DEMO_USERS = [
    {"email": "admin@demo.com", "name": "Demo Admin", "role": Role.ADMIN},
    {"email": "finance@demo.com", "name": "Demo Finance", "role": Role.FINANCE},
    {"email": "ops@demo.com", "name": "Demo Ops", "role": Role.OPS},
    {"email": "engineer@demo.com", "name": "Demo Engineer", "role": Role.ENGINEER},
]


async def seed_users() -> list[User]:
    users = []
    async with async_session_maker() as session:
        for entry in DEMO_USERS:
            existing = await session.scalar(select(User).where(User.email == entry["email"]))
            if existing:
                print(f"  = {entry['email']} already present")
                users.append(existing)
                continue
            user = User(email=entry["email"], name=entry["name"], role=entry["role"].value)
            session.add(user)
            users.append(user)
            print(f"  + {entry['email']} ({entry['role'].value})")
        await session.commit()
    return users


async def main():
    if settings.is_production:
        raise SystemExit("Refusing to seed demo users in production")

    print("Initializing tables...")
    await init_db()

    print("Seeding demo users...")
    users = await seed_users()

    print("\nBearer tokens (valid 7 days):")
    for user in users:
        token = create_access_token({"sub": user.id, "role": user.role}, expires_delta=timedelta(days=7))
        print(f"  {user.role:<9} {token}")


if __name__ == "__main__":
    asyncio.run(main())
