"""
HTTP routes: auth, sync, orders, credentials, labels, workers, health
"""
import httpx
import pytest
from fastapi.testclient import TestClient

from labelsync.auth import create_access_token
from labelsync.database import get_db
from labelsync.models import MarketplaceCredential, Order, SyncJob, SyncJobType, User
from labelsync.services.credentials import get_marketplace_credentials, save_marketplace_credentials
from labelsync.services.marketplaces import veeqo
from labelsync.services.marketplaces.errors import UpstreamError
from labelsync.services.order_reconciler import reconcile
from main import app


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(user_id: str = "user-1") -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': user_id, 'email': f'{user_id}@example.com'})}"}


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["service"] == "api"


class TestAuth:
    def test_missing_token(self, client):
        response = client.post("/api/sync/orders")
        assert response.status_code == 401

    def test_invalid_token(self, client):
        response = client.post("/api/sync/orders", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_first_request_creates_user(self, client, db_session):
        response = client.get("/api/sync/jobs", headers=auth_headers("new-user"))

        assert response.status_code == 200
        assert response.json() == {"jobs": []}
        created = db_session.query(User).filter(User.id == "new-user").one()
        assert created.email == "new-user@example.com"


class TestSyncRoutes:
    def test_sync_orders(self, client, db_session, user, monkeypatch):
        client.put("/api/marketplaces/veeqo/credentials", json={"apiKey": "vk"}, headers=auth_headers())

        async def fetch_orders(credentials, since=None):
            return [{"id": 555, "line_items": [{"sku": "A1", "quantity": 2, "price_before_discount_including_tax": 10}]}]

        monkeypatch.setattr(veeqo, "fetch_orders", fetch_orders)

        response = client.post("/api/sync/orders", headers=auth_headers())

        assert response.status_code == 200
        body = response.json()
        assert body["newOrders"] == 1
        assert body["updatedOrders"] == 0
        assert body["errors"] == {}

        jobs = client.get("/api/sync/jobs", headers=auth_headers()).json()["jobs"]
        assert jobs[0]["marketplace"] == "veeqo"
        assert jobs[0]["status"] == "SUCCESS"

    def test_sync_reports_marketplace_errors(self, client, user, monkeypatch):
        client.put("/api/marketplaces/veeqo/credentials", json={"apiKey": "vk"}, headers=auth_headers())

        async def fetch_orders(credentials, since=None):
            raise UpstreamError("Veeqo", 401, "Unauthorized")

        monkeypatch.setattr(veeqo, "fetch_orders", fetch_orders)

        response = client.post("/api/sync/orders", headers=auth_headers())

        assert response.status_code == 200
        assert response.json()["errors"] == {"veeqo": "Veeqo API 401: Unauthorized"}

    def test_deleted_credentials_are_not_synced(self, client, user):
        client.put("/api/marketplaces/veeqo/credentials", json={"apiKey": "vk"}, headers=auth_headers())
        assert client.delete("/api/marketplaces/veeqo/credentials", headers=auth_headers()).status_code == 200

        response = client.post("/api/sync/orders", headers=auth_headers())

        assert response.json()["newOrders"] == 0
        assert response.json()["errors"] == {}

    def test_resync_unknown_order(self, client, user):
        response = client.post("/api/sync/orders/nope/resync", headers=auth_headers())
        assert response.status_code == 404


class TestMarketplaceRoutes:
    def test_put_credentials_encrypts(self, client, db_session, user):
        response = client.put(
            "/api/marketplaces/trendyol/credentials",
            json={"supplierId": "12345", "apiKey": "key", "apiSecret": "secret"},
            headers=auth_headers(),
        )

        assert response.status_code == 200
        stored = db_session.query(MarketplaceCredential).one()
        assert "secret" not in stored.value_encrypted
        assert get_marketplace_credentials(db_session, user.id, "trendyol") == {
            "supplierId": "12345",
            "apiKey": "key",
            "apiSecret": "secret",
        }

    def test_put_credentials_missing_fields(self, client, user):
        response = client.put("/api/marketplaces/trendyol/credentials", json={"apiKey": "key"}, headers=auth_headers())
        assert response.status_code == 400
        assert "supplierId" in response.json()["detail"]

    def test_unsupported_marketplace(self, client, user):
        response = client.put("/api/marketplaces/etsy/credentials", json={"apiKey": "k"}, headers=auth_headers())
        assert response.status_code == 404

    def test_list_marketplaces(self, client, user):
        client.put("/api/marketplaces/shippo/credentials", json={"token": "t"}, headers=auth_headers())

        response = client.get("/api/marketplaces", headers=auth_headers())

        assert {m["marketplace"]: m["configured"] for m in response.json()} == {
            "veeqo": False,
            "trendyol": False,
            "shippo": True,
        }


class TestLabelRoutes:
    def test_generate_requires_order_ids(self, client, user):
        response = client.post("/api/labels/generate", json={}, headers=auth_headers())
        assert response.status_code == 400

    def test_generate_without_script_configuration(self, client, other_user):
        response = client.post("/api/labels/generate", json={"orderIds": ["x"]}, headers=auth_headers("user-2"))
        assert response.status_code == 400
        assert "Apps Script" in response.json()["detail"]

    def test_generate_reports_counts(self, client, db_session, user, veeqo_order, fake_http):
        stored = reconcile(db_session, user.id, veeqo.normalize_order(veeqo_order))
        fake_http.add("POST", "/script-abc/exec", httpx.Response(200, json={"success": True}))

        response = client.post(
            "/api/labels/generate",
            json={"orderIds": [stored.order_id, "missing"]},
            headers=auth_headers(),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["submitted"] == 1
        assert body["failed"] == 1
        assert body["results"][1] == {
            "orderId": "missing",
            "labelJobId": None,
            "status": "FAILED",
            "response": None,
            "error": "Order not found",
        }
        assert len(client.get("/api/labels", headers=auth_headers()).json()) == 1


class TestOrderRoutes:
    @pytest.fixture
    def stored_orders(self, db_session, user, other_user, veeqo_order):
        shipped = {
            "id": 2002,
            "created_at": "2024-04-10T09:00:00Z",
            "status": {"name": "shipped"},
            "deliver_to": {"first_name": "Bob", "last_name": "Smith"},
            "line_items": [{"sku": "CAP-1", "quantity": 1, "price_before_discount_including_tax": 8}],
        }
        amazon = reconcile(db_session, user.id, veeqo.normalize_order(veeqo_order))
        veeqo_direct = reconcile(db_session, user.id, veeqo.normalize_order(shipped))
        foreign = reconcile(db_session, other_user.id, veeqo.normalize_order({**veeqo_order, "id": 3003}))
        return {"amazon": amazon.order_id, "veeqo": veeqo_direct.order_id, "foreign": foreign.order_id}

    def test_list_is_scoped_to_user(self, client, stored_orders):
        response = client.get("/api/orders", headers=auth_headers())

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 2
        assert body["page"] == 1
        assert body["pageSize"] == 20
        ids = {order["id"] for order in body["orders"]}
        assert ids == {stored_orders["amazon"], stored_orders["veeqo"]}
        amazon = next(o for o in body["orders"] if o["id"] == stored_orders["amazon"])
        assert amazon["customerName"] == "Jane Doe"
        assert [item["sku"] for item in amazon["items"]] == ["MUG-1", "TEE-M"]
        assert amazon["packingStatus"] is None

    def test_filters(self, client, stored_orders):
        def ids(**params):
            orders = client.get("/api/orders", params=params, headers=auth_headers()).json()["orders"]
            return [order["id"] for order in orders]

        assert ids(marketplace="Amazon") == [stored_orders["amazon"]]
        assert ids(status="SHIPPED") == [stored_orders["veeqo"]]
        assert ids(startDate="2024-04-01T00:00:00") == [stored_orders["veeqo"]]
        assert ids(endDate="2024-03-31T23:59:59") == [stored_orders["amazon"]]

    def test_search_matches_customer_or_key(self, client, stored_orders):
        def ids(search):
            orders = client.get("/api/orders", params={"search": search}, headers=auth_headers()).json()["orders"]
            return [order["id"] for order in orders]

        assert ids("jane") == [stored_orders["amazon"]]
        assert ids("2002") == [stored_orders["veeqo"]]
        assert ids("nobody") == []

    def test_pagination(self, client, stored_orders):
        first = client.get("/api/orders", params={"limit": 1, "sort": "asc"}, headers=auth_headers()).json()
        second = client.get("/api/orders", params={"limit": 1, "page": 2, "sort": "asc"}, headers=auth_headers()).json()

        assert first["total"] == second["total"] == 2
        assert second["page"] == 2
        assert second["pageSize"] == 1
        assert len(first["orders"]) == len(second["orders"]) == 1
        assert first["orders"][0]["id"] != second["orders"][0]["id"]

    def test_update_production_status(self, client, db_session, stored_orders):
        response = client.patch(
            f"/api/orders/{stored_orders['amazon']}/production-status",
            json={"packingStatus": "PACKED", "productionNotes": "Engrave initials"},
            headers=auth_headers(),
        )

        assert response.status_code == 200
        order = response.json()["order"]
        assert order["packingStatus"] == "PACKED"
        assert order["productionNotes"] == "Engrave initials"
        assert order["packingEditedAt"] is not None
        assert order["productionEditedAt"] is not None

    def test_update_production_status_of_foreign_order(self, client, db_session, stored_orders):
        response = client.patch(
            f"/api/orders/{stored_orders['foreign']}/production-status",
            json={"packingStatus": "PACKED", "productionNotes": ""},
            headers=auth_headers(),
        )

        assert response.status_code == 404
        assert db_session.query(Order).filter(Order.id == stored_orders["foreign"]).one().packing_status is None

    def test_update_production_status_requires_both_fields(self, client, stored_orders):
        response = client.patch(
            f"/api/orders/{stored_orders['amazon']}/production-status",
            json={"packingStatus": "PACKED"},
            headers=auth_headers(),
        )
        assert response.status_code == 422

    def test_sync_keeps_production_edits(self, client, db_session, user, veeqo_order, monkeypatch):
        save_marketplace_credentials(db_session, user.id, "veeqo", {"apiKey": "vk"})
        stored = reconcile(db_session, user.id, veeqo.normalize_order(veeqo_order))
        client.patch(
            f"/api/orders/{stored.order_id}/production-status",
            json={"packingStatus": "PACKED", "productionNotes": "Engrave initials"},
            headers=auth_headers(),
        )

        async def fetch_orders(credentials, since=None):
            return [{**veeqo_order, "status": {"name": "shipped"}}]

        monkeypatch.setattr(veeqo, "fetch_orders", fetch_orders)
        response = client.post("/api/sync/orders", headers=auth_headers())
        assert response.json()["updatedOrders"] == 1

        db_session.expire_all()
        order = db_session.query(Order).filter(Order.id == stored.order_id).one()
        assert order.status == "SHIPPED"
        assert order.packing_status == "PACKED"
        assert order.production_notes == "Engrave initials"
        assert order.packing_edited_at is not None


class TestWorkerRoutes:
    def test_shipping_info_run_is_limited_to_caller(self, client, db_session, user, other_user, monkeypatch):
        save_marketplace_credentials(db_session, user.id, "veeqo", {"apiKey": "mine"})
        save_marketplace_credentials(db_session, other_user.id, "veeqo", {"apiKey": "theirs"})
        seen_keys = []

        async def fetch_orders(credentials, since=None):
            seen_keys.append(credentials["apiKey"])
            if credentials["apiKey"] == "theirs":
                raise UpstreamError("Veeqo", 401, "invalid key theirs")
            return []

        monkeypatch.setattr(veeqo, "fetch_orders", fetch_orders)

        response = client.post("/api/workers/shipping-info/run", headers=auth_headers())

        assert response.status_code == 200
        assert "user-2" not in response.text
        assert "theirs" not in response.text
        assert response.json()["errors"] == {}
        assert seen_keys == ["mine"]
        jobs = db_session.query(SyncJob).filter(SyncJob.job_type == SyncJobType.SHIPPING_INFO).all()
        assert [job.user_id for job in jobs] == [user.id]

    def test_shipping_info_run_is_listed(self, client, user):
        client.post("/api/workers/shipping-info/run", headers=auth_headers())

        jobs = client.get("/api/workers", headers=auth_headers()).json()

        assert len(jobs) == 1
        assert jobs[0]["type"] == "SHIPPING_INFO"
        assert jobs[0]["status"] == "SUCCESS"
