"""
Tests for authorization boundaries — cross-user isolation and role enforcement.

These tests verify two critical security properties:

1. **Cross-user isolation**: A MEMBER only ever sees and funds their own
   wallet. /wallet/me/* is scoped to the token's user, and a user_id in a
   deposit request body is ignored for members.

2. **Role enforcement**: Regular MEMBER users cannot review deposit
   requests, list the ledger, or touch /admin/* endpoints.
"""

import uuid


class TestCrossUserWalletIsolation:
    """A member's wallet endpoints never expose another user's data."""

    async def test_own_ledger_excludes_other_users(
        self, admin_client, authenticated_client, second_authenticated_client,
        member_id, second_member_id,
    ):
        await admin_client.post(f"/admin/users/{member_id}/wallet/adjust", json={"amount": 10})
        await admin_client.post(f"/admin/users/{second_member_id}/wallet/adjust", json={"amount": 20})

        mine = await authenticated_client.get("/wallet/me/transactions")
        assert mine.headers["x-total-count"] == "1"
        assert [t["user_id"] for t in mine.json()] == [str(member_id)]

        balance = await second_authenticated_client.get("/wallet/me/balance")
        assert balance.json()["balance"] == 20.0

    async def test_member_cannot_file_deposit_for_someone_else(
        self, authenticated_client, member_id, second_member_id,
    ):
        """user_id in the body is ignored for members."""
        resp = await authenticated_client.post(
            "/wallet_deposit_requests",
            json={"amount": 50, "user_id": str(second_member_id)},
        )
        assert resp.status_code == 201
        assert resp.json()["user_id"] == str(member_id)

    async def test_admin_can_file_deposit_on_behalf_of_member(self, admin_client, member_id):
        resp = await admin_client.post(
            "/wallet_deposit_requests",
            json={"amount": 50, "user_id": str(member_id)},
        )
        assert resp.status_code == 201
        assert resp.json()["user_id"] == str(member_id)

    async def test_admin_filing_for_unknown_user_is_404(self, admin_client):
        resp = await admin_client.post(
            "/wallet_deposit_requests",
            json={"amount": 50, "user_id": str(uuid.uuid4())},
        )
        assert resp.status_code == 404
        assert resp.json()["error_type"] == "user_not_found"


class TestNonAdminBlockedFromAdminEndpoints:
    """Regular MEMBER users cannot reach any admin-only endpoint.

    Every such endpoint depends on `require_admin`, which rejects non-ADMIN
    users with 403 before the handler (or the body) is looked at.
    """

    async def test_member_cannot_list_deposit_requests(self, authenticated_client):
        resp = await authenticated_client.get("/wallet_deposit_requests")
        assert resp.status_code == 403

    async def test_member_cannot_review_deposit_request(self, authenticated_client):
        created = await authenticated_client.post("/wallet_deposit_requests", json={"amount": 25})
        request_id = created.json()["id"]

        resp = await authenticated_client.patch(
            f"/wallet_deposit_requests/{request_id}",
            json={"status": "approved"},
        )
        assert resp.status_code == 403

        # Still pending, wallet untouched
        balance = await authenticated_client.get("/wallet/me/balance")
        assert balance.json()["balance"] == 0

    async def test_member_cannot_list_wallet_transactions(self, authenticated_client):
        resp = await authenticated_client.get("/wallet_transactions")
        assert resp.status_code == 403

    async def test_member_cannot_adjust_own_wallet(self, authenticated_client, member_id):
        resp = await authenticated_client.post(
            f"/admin/users/{member_id}/wallet/adjust",
            json={"amount": 1000},
        )
        assert resp.status_code == 403

        balance = await authenticated_client.get("/wallet/me/balance")
        assert balance.json()["balance"] == 0

    async def test_member_cannot_view_other_wallet(self, authenticated_client, second_member_id):
        resp = await authenticated_client.get(f"/admin/users/{second_member_id}/wallet")
        assert resp.status_code == 403

    async def test_unauthenticated_cannot_file_deposit(self, client):
        resp = await client.post("/wallet_deposit_requests", json={"amount": 25})
        assert resp.status_code == 401
