# Overview: Pytest coverage for the JSON API and CLI commands against an in-memory database.

import io

import pytest

from ministore.models import StorageEntry
from ministore.extensions import db


pytestmark = pytest.mark.api


def _create(client, name="Rice", quantity=10, original=40, selling=50, **extra):
    payload = {"name": name, "quantity": quantity, "originalPrice": original, "sellingPrice": selling}
    payload.update(extra)
    return client.post("/api/products", json=payload)


class TestProductRoutes:

    def test_create_then_upsert(self, client):
        response = _create(client, barcode="4801")
        assert response.status_code == 201
        body = response.get_json()
        assert body["created"] is True
        assert body["notices"] == []
        product_id = body["product"]["id"]

        response = _create(client, name="rice", quantity=5, original=42, selling=55)
        assert response.status_code == 200
        assert response.get_json()["product"]["quantity"] == 15
        assert response.get_json()["product"]["id"] == product_id

        listing = client.get("/api/products").get_json()
        assert listing["count"] == 1
        assert listing["items"][0]["stockStatus"] == "In Stock"

        found = client.get("/api/products/barcode/4801")
        assert found.status_code == 200
        assert found.get_json()["product"]["id"] == product_id

    def test_validation_error_shape(self, client):
        response = _create(client, quantity=-3)
        assert response.status_code == 400
        body = response.get_json()
        assert body["kind"] == "ValidationError"
        assert body["field"] == "quantity"

    def test_unknown_product_404(self, client):
        response = client.get("/api/products/999")
        assert response.status_code == 404
        assert response.get_json()["kind"] == "NotFoundError"

    def test_inline_edit_writes_price_history(self, client):
        product_id = _create(client).get_json()["product"]["id"]
        response = client.patch(f"/api/products/{product_id}", json={"sellingPrice": 60})
        assert response.status_code == 200
        history = client.get(f"/api/products/{product_id}/price-history").get_json()
        assert history["count"] == 1
        assert history["items"][0]["reason"] == "Inline Edit from Inventory"

    def test_delete_product(self, client):
        product_id = _create(client).get_json()["product"]["id"]
        assert client.delete(f"/api/products/{product_id}").status_code == 200
        assert client.get(f"/api/products/{product_id}").status_code == 404

    def test_import_csv_upload(self, client):
        data = {"file": (io.BytesIO(b"name,quantity,cost,price\nBeans,4,10,15\n"), "stock.csv")}
        response = client.post("/api/products/import", data=data, content_type="multipart/form-data")
        assert response.status_code == 201
        assert response.get_json()["import"]["created"] == 1

    def test_import_bad_row_rejected(self, client):
        response = client.post("/api/products/import", json={"csv": "name,quantity,cost,price\nBeans,x,10,15\n"})
        assert response.status_code == 400
        assert response.get_json()["error"].startswith("Row 2:")
        assert client.get("/api/products").get_json()["count"] == 0


class TestSaleRoutes:

    def test_sale_lifecycle(self, client):
        product_id = _create(client, quantity=10, selling=50).get_json()["product"]["id"]

        response = client.post("/api/sales", json={"productId": product_id, "quantity": 3})
        assert response.status_code == 201
        body = response.get_json()
        assert body["sale"]["totalAmount"] == 150
        assert body["product"]["quantity"] == 7
        sale_id = body["sale"]["id"]

        preview = client.get(f"/api/sales/{sale_id}/delete-preview").get_json()
        assert preview["message"] == "This will restore 3 units to Rice"

        assert client.delete(f"/api/sales/{sale_id}").status_code == 200
        product = client.get(f"/api/products/{product_id}").get_json()["product"]
        assert product["quantity"] == 10
        assert product["totalSold"] == 0

    def test_insufficient_stock(self, client):
        product_id = _create(client, quantity=2).get_json()["product"]["id"]
        response = client.post("/api/sales", json={"productId": product_id, "quantity": 5})
        assert response.status_code == 409
        body = response.get_json()
        assert body["error"] == "Insufficient stock. Available quantity: 2"
        assert body["details"]["available"] == 2


class TestRestockAndPricingRoutes:

    def test_restock_with_price(self, client):
        product_id = _create(client, quantity=2, original=10, selling=20).get_json()["product"]["id"]
        response = client.post("/api/restock", json={
            "productId": product_id, "quantityAdded": 8, "newSellingPrice": 25,
        })
        assert response.status_code == 201
        body = response.get_json()
        assert body["product"]["quantity"] == 10
        assert body["restock"]["stockAfter"] == 10
        assert body["priceChanges"] == ["Selling: ₱20.00 → ₱25.00"]

        history = client.get("/api/pricing/history").get_json()
        assert history["items"][0]["newMargin"] == pytest.approx(60.0)

    def test_restock_and_sale_accept_text_product_id(self, client):
        product_id = _create(client, quantity=2).get_json()["product"]["id"]
        response = client.post("/api/restock", json={"productId": str(product_id), "quantityAdded": 3})
        assert response.status_code == 201
        assert response.get_json()["product"]["quantity"] == 5

        response = client.post("/api/sales", json={"productId": str(product_id), "quantity": 1})
        assert response.status_code == 201
        assert response.get_json()["sale"]["productId"] == product_id

    def test_suggestions_follow_setting(self, client):
        _create(client, quantity=3)
        suggestions = client.get("/api/restock/suggestions").get_json()
        assert suggestions["enabled"] is True
        assert suggestions["suggestions"][0]["suggestedQuantity"] == 9

        client.put("/api/settings", json={"reorderSuggestions": False})
        assert client.get("/api/restock/suggestions").get_json() == {"enabled": False, "suggestions": []}

    def test_bulk_price_preview_and_apply(self, client):
        _create(client, name="A", selling=20)
        _create(client, name="B", selling=40)
        preview = client.post("/api/pricing/bulk/preview", json={"adjustmentType": "percentage", "value": 10})
        changes = preview.get_json()["changes"]
        assert len(changes) == 2

        response = client.post("/api/pricing/bulk/apply", json={"changes": changes})
        assert response.status_code == 200
        prices = sorted(p["sellingPrice"] for p in response.get_json()["products"])
        assert prices == [pytest.approx(22), pytest.approx(44)]

    def test_bulk_uniform_nothing_to_restock(self, client):
        _create(client, quantity=100)
        body = client.post("/api/restock/bulk/uniform", json={"amount": 5}).get_json()
        assert body["message"] == "Nothing to restock"


class TestReportAndBackupRoutes:

    def test_reports(self, client):
        product_id = _create(client, quantity=4).get_json()["product"]["id"]
        client.post("/api/sales", json={"productId": product_id, "quantity": 1})

        summary = client.get("/api/reports/summary").get_json()
        assert summary["total_transactions"] == 1
        alerts = client.get("/api/reports/stock-alerts").get_json()
        assert [p["name"] for p in alerts["low"]] == ["Rice"]
        monthly = client.get("/api/reports/monthly").get_json()
        assert monthly["metrics"]["transactions"] == 1
        assert client.get("/api/reports/monthly?month=2026-99").status_code == 400

    def test_backup_clear_requires_confirmation(self, client):
        _create(client)
        assert client.post("/api/backup/clear", json={}).status_code == 400
        assert client.post("/api/backup/clear", json={"confirm": True}).status_code == 200
        assert client.get("/api/products").get_json()["count"] == 0

    def test_export_and_restore(self, client):
        _create(client)
        export = client.get("/api/backup/export")
        assert "attachment" in export.headers["Content-Disposition"]
        snapshot = export.get_json()
        client.post("/api/backup/clear", json={"confirm": True})

        response = client.post("/api/backup/restore", json=snapshot)
        assert response.status_code == 200
        assert response.get_json()["restored"]["products"] == 1
        assert db.session.query(StorageEntry).count() == 5

    def test_health(self, client):
        body = client.get("/api/system/health").get_json()
        assert body["status"] == "healthy"
        assert body["checks"]["remote"] is None
        assert body["store"]["local_storage"] == "sqlite"


class TestCli:

    def test_seed_and_reports(self, app):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["store", "seed-demo", "--yes"])
        assert result.exit_code == 0, result.output
        assert "PASS Seeded 8 products" in result.output

        result = runner.invoke(args=["reports", "inventory"])
        assert result.exit_code == 0, result.output
        assert "Products: 8" in result.output

    def test_wipe_requires_confirmation(self, app):
        runner = app.test_cli_runner()
        runner.invoke(args=["store", "seed-demo", "--yes"])
        result = runner.invoke(args=["store", "wipe"], input="n\n")
        assert result.exit_code != 0
        result = runner.invoke(args=["store", "wipe", "--yes"])
        assert "PASS All data cleared" in result.output

    def test_push_without_remote_fails(self, app):
        result = app.test_cli_runner().invoke(args=["store", "push"])
        assert result.exit_code != 0
        assert "Remote store is not configured" in result.output
