# =============================================================================
# tests/test_admin_routes.py - Admin and Maintenance Endpoint Tests
# =============================================================================
# This module contains tests for:
# - Role enforcement (401 without token, 403 for non-admins)
# - User management (reset password, verify, delete)
# - Listing review transitions
# - The manual expiry sweep trigger
# =============================================================================

import pytest

from lib.credentials import verify_password

PAST = "2020-01-01T00:00:00+00:00"

ADMIN_ROUTES = [
    "/api/admin/reset-password",
    "/api/admin/verify-user",
    "/api/admin/unverify-user",
    "/api/admin/delete-user",
    "/api/admin/approve-product",
    "/api/admin/reject-product",
    "/api/admin/approve-edit",
    "/api/admin/reject-edit",
    "/api/run-scheduled-task",
]


# =============================================================================
# Role Enforcement Tests
# =============================================================================

class TestRoleEnforcement:
    """Every admin route checks the signed role."""

    @pytest.mark.parametrize("path", ADMIN_ROUTES)
    def test_requires_token(self, client, path):
        response = client.post(path, json={})

        assert response.status_code == 401

    @pytest.mark.parametrize("path", ADMIN_ROUTES)
    def test_rejects_regular_users(self, client, owner_headers, path):
        response = client.post(path, json={}, headers=owner_headers)

        assert response.status_code == 403
        assert response.json()["error"] == "Forbidden"


# =============================================================================
# User Management Tests
# =============================================================================

class TestUserManagement:
    """Test admin user operations."""

    def test_reset_password(self, client, records, owner, admin_headers):
        response = client.post(
            "/api/admin/reset-password",
            json={"userId": owner["id"], "newPassword": "Res3tPassword"},
            headers=admin_headers,
        )

        assert response.json() == {"success": True}
        assert verify_password("Res3tPassword", records.user(owner["id"])["password_hash"])

    def test_reset_password_validates_new_password(self, client, owner, admin_headers):
        response = client.post(
            "/api/admin/reset-password",
            json={"userId": owner["id"], "newPassword": "weak"},
            headers=admin_headers,
        )

        assert response.status_code == 400

    def test_reset_password_unknown_user(self, client, records, admin_headers):
        response = client.post(
            "/api/admin/reset-password",
            json={"userId": "nobody", "newPassword": "Res3tPassword"},
            headers=admin_headers,
        )

        assert response.status_code == 404

    def test_verify_and_unverify(self, client, records, owner, admin_headers):
        client.post("/api/admin/verify-user", json={"userId": owner["id"]}, headers=admin_headers)
        assert records.user(owner["id"])["is_verified"] is True

        client.post("/api/admin/unverify-user", json={"userId": owner["id"]}, headers=admin_headers)
        assert records.user(owner["id"])["is_verified"] is False

    def test_verify_requires_user_id(self, client, admin_headers):
        response = client.post("/api/admin/verify-user", json={}, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "userId required"

    def test_delete_user(self, client, records, b2, owner, admin_headers):
        b2.put("products/a.webp")
        records.add_listing(user_id=owner["id"], images=["/images/products/a.webp"])
        records.add_listing(user_id=owner["id"])

        response = client.post("/api/admin/delete-user", json={"userId": owner["id"]}, headers=admin_headers)

        assert response.json() == {"success": True, "deletedProducts": 2, "imageErrors": []}
        assert records.user(owner["id"]) is None
        assert b2.objects == {}


# =============================================================================
# Review Tests
# =============================================================================

class TestReview:
    """Test listing review endpoints."""

    def test_approve_product(self, client, records, owner, admin_headers):
        listing = records.add_listing(user_id=owner["id"], status="pending", ad_type="7days")

        response = client.post(
            "/api/admin/approve-product", json={"productId": listing["id"]}, headers=admin_headers
        )

        product = response.json()["product"]
        assert product["status"] == "approved"
        assert product["admin_approved"] is True
        assert product["boosted_until"] == product["expires_at"]

    def test_approve_non_pending_conflicts(self, client, records, owner, admin_headers):
        listing = records.add_listing(user_id=owner["id"], status="approved")

        response = client.post(
            "/api/admin/approve-product", json={"productId": listing["id"]}, headers=admin_headers
        )

        assert response.status_code == 409

    def test_reject_product_deletes(self, client, records, b2, owner, admin_headers):
        b2.put("products/a.webp")
        listing = records.add_listing(user_id=owner["id"], status="pending", images=["/images/products/a.webp"])

        response = client.post(
            "/api/admin/reject-product", json={"productId": listing["id"]}, headers=admin_headers
        )

        assert response.json()["imagesDeleted"] == 1
        assert records.listing(listing["id"]) is None

    def test_approve_edit(self, client, records, owner, admin_headers):
        listing = records.add_listing(user_id=owner["id"], status="edited", expires_at="2099-01-01T00:00:00+00:00")

        response = client.post(
            "/api/admin/approve-edit", json={"productId": listing["id"]}, headers=admin_headers
        )

        assert response.json()["product"]["status"] == "approved"
        assert response.json()["product"]["expires_at"] == "2099-01-01T00:00:00+00:00"

    def test_reject_edit(self, client, records, owner, admin_headers):
        listing = records.add_listing(user_id=owner["id"], status="edited", name="Sofa bed")

        response = client.post(
            "/api/admin/reject-edit", json={"productId": listing["id"]}, headers=admin_headers
        )

        assert response.json()["product"]["status"] == "approved"
        assert response.json()["product"]["name"] == "Sofa bed"

    def test_reject_edit_requires_edited(self, client, records, owner, admin_headers):
        listing = records.add_listing(user_id=owner["id"], status="pending")

        response = client.post(
            "/api/admin/reject-edit", json={"productId": listing["id"]}, headers=admin_headers
        )

        assert response.status_code == 409
        assert response.json()["error"] == "Product is not edited"


# =============================================================================
# Maintenance Tests
# =============================================================================

class TestScheduledTask:
    """Test the manual expiry sweep trigger."""

    def test_runs_sweep(self, client, records, owner, admin_headers):
        paid = records.add_listing(user_id=owner["id"], status="approved", ad_type="featured", expires_at=PAST)
        free = records.add_listing(user_id=owner["id"], status="approved", ad_type="free", expires_at=PAST)

        response = client.post("/api/run-scheduled-task", headers=admin_headers)

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Ad expiry and cleanup completed",
            "demoted": 1,
            "deleted": 1,
            "failures": [],
        }
        assert records.listing(paid["id"])["ad_type"] == "free"
        assert records.listing(free["id"]) is None
