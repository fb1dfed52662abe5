#!/usr/bin/env python3
"""Promote an existing user to ADMIN. Run on the server.

    python demo/promote_admin.py someone@example.com
"""
import argparse
import asyncio

from sqlalchemy import update
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from wallet_ledger.config import settings
from wallet_ledger.models.user import User, UserType


async def promote(email: str) -> None:
    engine = create_async_engine(settings.DATABASE_URL)
    sf = async_sessionmaker(engine, class_=AsyncSession)
    async with sf() as s:
        r = await s.execute(
            update(User)
            .where(User.email == email)
            .values(user_type=UserType.ADMIN)
        )
        await s.commit()
        print(f"Rows updated: {r.rowcount}")
    await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Promote a user to ADMIN")
    parser.add_argument("email", nargs="?", default="admin@walletdemo.com")
    asyncio.run(promote(parser.parse_args().email))
