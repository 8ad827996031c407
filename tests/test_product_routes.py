# =============================================================================
# tests/test_product_routes.py - Listing Endpoint Tests
# =============================================================================
# This module contains tests for:
# - The cached public feed (X-Cache HIT/MISS, proxy image paths)
# - Create/update/delete ownership and status rules
# - Image deletion and upload
# =============================================================================

from app.routers.products import FEED_CACHE_KEY

LISTING = {"name": "Sofa", "category": "furniture", "price": 350000}


# =============================================================================
# Feed Tests
# =============================================================================

class TestFeed:
    """Test GET /api/get-products."""

    def test_miss_then_hit(self, client, records, owner, response_cache):
        records.add_listing(
            user_id=owner["id"], status="approved",
            images=["https://f000.backblazeb2.com/file/tesatiki-products/products/a.webp"],
        )
        records.add_listing(user_id=owner["id"], status="pending")

        first = client.get("/api/get-products")

        assert first.status_code == 200
        assert first.headers["X-Cache"] == "MISS"
        assert first.headers["Cache-Control"] == "public, max-age=600"
        feed = first.json()
        assert len(feed) == 1
        assert feed[0]["images"] == ["/images/products/a.webp"]
        assert feed[0]["users"]["full_name"] == "Jane Doe"
        assert response_cache.entries[FEED_CACHE_KEY][1] == 600

        second = client.get("/api/get-products")

        assert second.headers["X-Cache"] == "HIT"
        assert second.json() == feed

    def test_feed_failure(self, client, records):
        records.fail("products", "select")

        response = client.get("/api/get-products")

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to fetch products"
        assert response.json()["details"]["upstream"]["code"] == "XX000"


# =============================================================================
# Create / Update Tests
# =============================================================================

class TestCreateAndUpdate:
    """Create as owner, update as other user and as admin."""

    def test_create_requires_token(self, client):
        response = client.post("/api/create-product", json={"listing": LISTING})
        assert response.status_code == 401

    def test_scenario_owner_other_admin(self, client, records, owner_headers, other_headers, admin_headers):
        created = client.post("/api/create-product", json={"listing": LISTING}, headers=owner_headers)
        assert created.status_code == 200
        product = created.json()["product"]
        assert product["status"] == "pending"

        forbidden = client.post(
            "/api/update-product",
            json={"productId": product["id"], "updates": {"price": 1}},
            headers=other_headers,
        )
        assert forbidden.status_code == 403
        assert forbidden.json()["error"] == "Forbidden"

        approved = client.post(
            "/api/update-product",
            json={"productId": product["id"], "updates": {"price": 300000}},
            headers=admin_headers,
        )
        assert approved.status_code == 200
        assert approved.json()["product"]["status"] == "approved"
        assert approved.json()["product"]["admin_approved"] is True

    def test_owner_edit_goes_back_to_review(self, client, records, owner, owner_headers):
        listing = records.add_listing(user_id=owner["id"], status="approved")

        response = client.post(
            "/api/update-product",
            json={"productId": listing["id"], "updates": {"name": "Sofa bed", "status": "approved"}},
            headers=owner_headers,
        )

        assert response.status_code == 200
        assert response.json()["product"]["status"] == "edited"

    def test_update_missing_listing(self, client, records, owner_headers):
        response = client.post(
            "/api/update-product", json={"productId": 404, "updates": {"name": "x"}}, headers=owner_headers
        )

        assert response.status_code == 404
        assert response.json()["error"] == "Product not found"

    def test_free_quota_conflict(self, client, records, owner, owner_headers):
        for _ in range(3):
            records.add_listing(user_id=owner["id"], ad_type="free", status="approved")

        response = client.post("/api/create-product", json={"listing": LISTING}, headers=owner_headers)

        assert response.status_code == 409

    def test_malformed_body(self, client, owner_headers):
        response = client.post("/api/create-product", json={"listing": "not-an-object"}, headers=owner_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "Validation error"


# =============================================================================
# Delete Tests
# =============================================================================

class TestDelete:
    """Test listing and image deletion endpoints."""

    def test_delete_product(self, client, records, b2, owner, owner_headers):
        b2.put("products/a.webp")
        b2.put("products/b.webp")
        listing = records.add_listing(
            user_id=owner["id"], images=["/images/products/a.webp", "/images/products/b.webp"]
        )

        response = client.post("/api/delete-product", json={"productId": listing["id"]}, headers=owner_headers)

        assert response.status_code == 200
        assert response.json() == {"success": True, "productName": "Sofa", "imagesDeleted": 2}
        assert records.listing(listing["id"]) is None

    def test_delete_product_reports_image_errors(self, client, records, b2, owner, owner_headers):
        b2.failing_deletes.add(b2.put("products/a.webp"))
        listing = records.add_listing(user_id=owner["id"], images=["/images/products/a.webp"])

        response = client.post("/api/delete-product", json={"productId": listing["id"]}, headers=owner_headers)

        assert response.status_code == 200
        assert response.json()["imageErrors"]
        assert records.listing(listing["id"]) is None

    def test_delete_product_forbidden(self, client, records, owner, other_headers):
        listing = records.add_listing(user_id=owner["id"])

        response = client.post("/api/delete-product", json={"productId": listing["id"]}, headers=other_headers)

        assert response.status_code == 403
        assert records.listing(listing["id"]) is not None

    def test_delete_product_requires_id(self, client, owner_headers):
        response = client.post("/api/delete-product", json={}, headers=owner_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "productId required"

    def test_delete_images_for_own_listing(self, client, records, b2, owner, owner_headers):
        b2.put("products/a.webp")
        listing = records.add_listing(user_id=owner["id"])

        response = client.post(
            "/api/delete-images",
            json={"images": ["/images/products/a.webp"], "productId": listing["id"]},
            headers=owner_headers,
        )

        assert response.json() == {"success": True, "deleted": 1}

    def test_delete_images_for_someone_elses_listing(self, client, records, b2, owner, other_headers):
        b2.put("products/a.webp")
        listing = records.add_listing(user_id=owner["id"])

        response = client.post(
            "/api/delete-images",
            json={"images": ["/images/products/a.webp"], "productId": listing["id"]},
            headers=other_headers,
        )

        assert response.status_code == 403
        assert b2.version_count("products/a.webp") == 1

    def test_delete_images_requires_array(self, client, owner_headers):
        response = client.post("/api/delete-images", json={}, headers=owner_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "images array required"


# =============================================================================
# Upload Tests
# =============================================================================

class TestUpload:
    """Test POST /api/upload-image."""

    def test_upload(self, client, b2):
        response = client.post(
            "/api/upload-image",
            files={"file": ("photo.png", b"\x89PNG data", "image/png")},
        )

        assert response.status_code == 200
        url = response.json()["url"]
        assert url.startswith("/images/products/") and url.endswith(".png")
        assert b2.version_count(url[len("/images/"):]) == 1

    def test_upload_rejects_non_image(self, client, b2):
        response = client.post(
            "/api/upload-image",
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid file"
        assert b2.requests == []

    def test_upload_rejects_svg(self, client, b2):
        response = client.post(
            "/api/upload-image",
            files={"file": ("x.svg", b"<svg onload=\"alert(1)\"/>", "image/svg+xml")},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid file"
        assert b2.requests == []

    def test_upload_missing_file(self, client):
        response = client.post("/api/upload-image", data={"other": "x"})

        assert response.status_code == 400

    def test_upload_too_large(self, client, b2, monkeypatch):
        from app.config import settings

        monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE_MB", 1)

        response = client.post(
            "/api/upload-image",
            files={"file": ("big.jpg", b"x" * (1024 * 1024 + 1), "image/jpeg")},
        )

        assert response.status_code == 413
        assert b2.requests == []
