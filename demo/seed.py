#!/usr/bin/env python3
"""
Demo seed script — populates a running server with sample wallet data.

!! NOT FOR PRODUCTION !!
This script creates test users with known passwords, deposit requests in
every state and a few admin adjustments. It is intended ONLY for local
demos and admin panel development.

Usage:
    # With the API server running on localhost:8000:
    python demo/seed.py

    # Reset the database and re-seed:
    python demo/seed.py --reset

    # Custom server URL:
    python demo/seed.py --base-url http://localhost:9000

Login credentials after seeding:
    ┌──────────────────────────────┬───────────────────┬────────┐
    │ Email                        │ Password          │ Role   │
    ├──────────────────────────────┼───────────────────┼────────┤
    │ admin@walletdemo.com         │ AdminDemo123!     │ ADMIN  │
    │ ayse.yilmaz@example.com      │ AyseDemo123!      │ MEMBER │
    │ mehmet.kaya@example.com      │ MehmetDemo123!    │ MEMBER │
    │ zeynep.demir@example.com     │ ZeynepDemo123!    │ MEMBER │
    └──────────────────────────────┴───────────────────┴────────┘
"""

import argparse
import asyncio
import os
import random
import sys

import httpx

BASE_URL = "http://localhost:8000"

# ---------------------------------------------------------------------------
# Demo users
# ---------------------------------------------------------------------------

ADMIN = {
    "email": "admin@walletdemo.com",
    "password": "AdminDemo123!",
    "full_name": "Store Admin",
}

MEMBERS = [
    {
        "email": "ayse.yilmaz@example.com",
        "password": "AyseDemo123!",
        "full_name": "Ayşe Yılmaz",
        # (amount, final status)
        "deposits": [(250, "approved"), (100, "approved"), (75, "pending")],
    },
    {
        "email": "mehmet.kaya@example.com",
        "password": "MehmetDemo123!",
        "full_name": "Mehmet Kaya",
        "deposits": [(500, "approved"), (40, "rejected")],
    },
    {
        "email": "zeynep.demir@example.com",
        "password": "ZeynepDemo123!",
        "full_name": None,
        "deposits": [(60, "pending"), (120, "pending")],
    },
]

PAYMENT_METHODS = ["havale", "havale", "eft", "papara"]

ADJUSTMENT_REASONS = [
    "Goodwill credit for delayed delivery",
    "Correction of duplicate charge",
    "Campaign bonus",
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def log(msg: str) -> None:
    print(f"  {msg}")


def money(amount: float) -> str:
    return f"{amount:,.2f} TL"


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def signup(client: httpx.AsyncClient, user: dict) -> dict:
    """Sign up a user, return the signup response (user_id, token, ...)."""
    body = {"email": user["email"], "password": user["password"]}
    if user.get("full_name"):
        body["full_name"] = user["full_name"]
    resp = await client.post(f"{BASE_URL}/auth/signup", json=body)
    resp.raise_for_status()
    return resp.json()


async def file_deposit(client: httpx.AsyncClient, token: str, amount: float) -> dict:
    resp = await client.post(
        f"{BASE_URL}/wallet_deposit_requests",
        json={
            "amount": amount,
            "payment_method": random.choice(PAYMENT_METHODS),
            "payment_proof": f"https://cdn.example.com/receipts/{random.randint(1000, 9999)}.jpg",
        },
        headers=auth_header(token),
    )
    resp.raise_for_status()
    return resp.json()


async def review(client: httpx.AsyncClient, admin_token: str, request_id: str,
                 status: str, notes: str | None = None) -> dict:
    body: dict = {"status": status}
    if notes:
        body["admin_notes"] = notes
    resp = await client.patch(
        f"{BASE_URL}/wallet_deposit_requests/{request_id}",
        json=body,
        headers=auth_header(admin_token),
    )
    resp.raise_for_status()
    return resp.json()


async def adjust(client: httpx.AsyncClient, admin_token: str, user_id: str,
                 amount: float, description: str) -> dict:
    resp = await client.post(
        f"{BASE_URL}/admin/users/{user_id}/wallet/adjust",
        json={"amount": amount, "description": description},
        headers=auth_header(admin_token),
    )
    return resp.json()


async def get_wallet(client: httpx.AsyncClient, admin_token: str, user_id: str) -> dict:
    resp = await client.get(
        f"{BASE_URL}/admin/users/{user_id}/wallet",
        headers=auth_header(admin_token),
    )
    resp.raise_for_status()
    return resp.json()


async def promote_to_admin(admin_email: str) -> None:
    """Directly update the user's role to ADMIN in the database.

    This bypasses the API since there's no admin-promotion endpoint
    (admin provisioning is an operator action, not self-service).
    """
    from sqlalchemy import update
    from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
    from wallet_ledger.config import settings
    from wallet_ledger.models.user import User, UserType

    engine = create_async_engine(settings.DATABASE_URL)
    session_factory = async_sessionmaker(engine, class_=AsyncSession)

    async with session_factory() as session:
        await session.execute(
            update(User)
            .where(User.email == admin_email)
            .values(user_type=UserType.ADMIN)
        )
        await session.commit()

    await engine.dispose()


# ---------------------------------------------------------------------------
# Seed logic
# ---------------------------------------------------------------------------

async def seed(base_url: str) -> None:
    global BASE_URL
    BASE_URL = base_url

    print("\n========================================")
    print("  DEMO SEED — NOT FOR PRODUCTION")
    print("========================================\n")

    async with httpx.AsyncClient(timeout=30.0) as client:
        # Health check
        try:
            health = await client.get(f"{BASE_URL}/health")
            health.raise_for_status()
        except (httpx.ConnectError, httpx.HTTPStatusError):
            print(f"  ERROR: Cannot connect to {BASE_URL}")
            print("  Start the server first: uvicorn wallet_ledger.main:app --reload\n")
            sys.exit(1)

        # --- Admin ---
        print("Creating admin user...")
        admin_token = (await signup(client, ADMIN))["token"]
        await promote_to_admin(ADMIN["email"])
        log(f"Admin: {ADMIN['email']} / {ADMIN['password']}")

        # --- Members ---
        for member in MEMBERS:
            print(f"\nCreating {member['full_name'] or member['email']}...")
            account = await signup(client, member)
            token, user_id = account["token"], account["user_id"]
            log(f"Login: {member['email']} / {member['password']}")

            for amount, final_status in member["deposits"]:
                request = await file_deposit(client, token, amount)
                if final_status == "approved":
                    await review(client, admin_token, request["id"], "approved")
                elif final_status == "rejected":
                    await review(client, admin_token, request["id"], "rejected",
                                 notes="No matching transfer found")
                log(f"Deposit request {money(amount)} via {request['payment_method']}: {final_status}")

            if random.random() < 0.7:
                amount = random.choice([-25, 10, 15, 50])
                result = await adjust(client, admin_token, user_id, amount,
                                      random.choice(ADJUSTMENT_REASONS))
                if "error_type" in result:
                    log(f"Adjustment {money(amount)} refused: {result['error_type']}")
                else:
                    log(f"Adjustment {money(amount)}")

            wallet = await get_wallet(client, admin_token, user_id)
            log(f"Balance: {money(wallet['balance'])} (ledger match: {wallet['match']})")

    # --- Summary ---
    print("\n========================================")
    print("  SEED COMPLETE — Login Credentials")
    print("========================================")
    print(f"\n  {'Email':<30s} {'Password':<20s} {'Role'}")
    print(f"  {'─' * 30} {'─' * 20} {'─' * 6}")
    print(f"  {ADMIN['email']:<30s} {ADMIN['password']:<20s} ADMIN")
    for m in MEMBERS:
        print(f"  {m['email']:<30s} {m['password']:<20s} MEMBER")
    print()


def reset_database() -> None:
    """Delete the SQLite database file so the server recreates it on restart."""
    db_path = os.path.join(os.path.dirname(__file__), "..", "data", "wallet.db")
    db_path = os.path.normpath(db_path)

    if os.path.exists(db_path):
        os.remove(db_path)
        print(f"\n  Deleted {db_path}")
        print("  Restart the server to recreate empty tables.\n")
    else:
        print(f"\n  No database found at {db_path}\n")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

async def main() -> None:
    parser = argparse.ArgumentParser(
        description="Demo seed script — NOT FOR PRODUCTION",
        epilog="Creates sample users, deposit requests, and wallet adjustments.",
    )
    parser.add_argument(
        "--base-url", default="http://localhost:8000",
        help="Base URL of the running API (default: http://localhost:8000)",
    )
    parser.add_argument(
        "--reset", action="store_true",
        help="Delete the database file and exit (restart server to recreate)",
    )
    args = parser.parse_args()

    if args.reset:
        reset_database()
        return

    await seed(args.base_url)


if __name__ == "__main__":
    asyncio.run(main())
