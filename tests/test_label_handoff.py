"""
Label hand-off to Apps Script
"""
import httpx
import pytest

from labelsync.models import LabelJob, LabelJobStatus, Order, OrderShipping
from labelsync.services.label_handoff import build_label_request, submit_label_requests
from labelsync.services.marketplaces import veeqo
from labelsync.services.order_reconciler import reconcile


@pytest.fixture
def order(db_session, user, veeqo_order):
    result = reconcile(db_session, user.id, veeqo.normalize_order(veeqo_order))
    return db_session.query(Order).filter(Order.id == result.order_id).one()


class TestBuildLabelRequest:
    def test_recipient_from_order_address(self, order):
        label = build_label_request(order, None, None)

        assert label["orderId"] == order.id
        assert label["marketplaceKey"] == "1001"
        assert label["recipient"]["name"] == "Jane Doe"
        assert label["recipient"]["zip"] == "N1 9GU"
        assert label["shipper"] == {}
        assert label["currency"] == "GBP"
        assert label["dutiesPaymentType"] == "SENDER"
        assert sorted(item["sku"] for item in label["items"]) == ["MUG-1", "TEE-M"]

    def test_recipient_prefers_order_shipping(self, db_session, order, shipper_profile):
        shipping = OrderShipping(
            order_id=order.id,
            first_name="Janet",
            last_name="Doe",
            street1="22 Low Rd",
            city="Leeds",
            postal_code="LS1 1AA",
            country_code="GB",
            phone="442079460000",
        )
        db_session.add(shipping)
        db_session.commit()

        label = build_label_request(order, shipping, shipper_profile)

        assert label["recipient"]["name"] == "Janet Doe"
        assert label["recipient"]["city"] == "Leeds"
        assert label["shipper"]["name"] == "Acme Goods"
        assert label["shipper"]["phone"] == "4155550100"
        assert label["currency"] == "USD"
        assert label["dutiesPaymentType"] == "RECIPIENT"


class TestSubmitLabelRequests:
    @pytest.mark.asyncio
    async def test_successful_submission(self, db_session, user, order, fake_http):
        fake_http.add("POST", "/script-abc/exec", httpx.Response(200, json={"success": True, "row": 7}))

        results = await submit_label_requests(db_session, user, [order.id], access_token="google-token")

        assert results[0]["status"] == "SUBMITTED"
        call = fake_http.calls[0]
        assert call["url"] == "https://script.google.com/macros/s/script-abc/exec"
        assert call["headers"]["Authorization"] == "Bearer google-token"
        assert call["json"]["action"] == "generateLabel"
        assert call["json"]["sheetId"] == "sheet-xyz"
        assert call["json"]["label"]["orderId"] == order.id
        job = db_session.query(LabelJob).one()
        assert job.status == LabelJobStatus.SUBMITTED
        assert job.response_payload == {"success": True, "row": 7}

    @pytest.mark.asyncio
    async def test_script_error_marks_job_failed(self, db_session, user, order, fake_http):
        fake_http.add("POST", "/exec", httpx.Response(200, json={"error": "Sheet not found"}))

        results = await submit_label_requests(db_session, user, [order.id])

        assert results[0]["status"] == "FAILED"
        assert results[0]["error"] == "Sheet not found"
        assert "Authorization" not in fake_http.calls[0]["headers"]

    @pytest.mark.asyncio
    async def test_http_error_status_marks_job_failed(self, db_session, user, order, fake_http):
        fake_http.add("POST", "/exec", httpx.Response(500, text="Internal error"))

        results = await submit_label_requests(db_session, user, [order.id])

        assert results[0]["status"] == "FAILED"
        assert results[0]["error"] == "Apps Script returned 500"

    @pytest.mark.asyncio
    async def test_transport_error_marks_job_failed(self, db_session, user, order, fake_http):
        def handler(url, json, headers):
            raise httpx.ConnectError("unreachable")

        fake_http.add("POST", "/exec", handler)

        results = await submit_label_requests(db_session, user, [order.id])

        assert results[0]["status"] == "FAILED"
        assert results[0]["error"] == "unreachable"
        assert db_session.query(LabelJob).one().status == LabelJobStatus.FAILED

    @pytest.mark.asyncio
    async def test_foreign_order_is_rejected_without_job(self, db_session, user, other_user, veeqo_order, fake_http):
        result = reconcile(db_session, other_user.id, veeqo.normalize_order(veeqo_order))

        results = await submit_label_requests(db_session, user, [result.order_id])

        assert results == [{"orderId": result.order_id, "status": "FAILED", "error": "Order not found"}]
        assert fake_http.calls == []
        assert db_session.query(LabelJob).count() == 0

    @pytest.mark.asyncio
    async def test_requires_script_configuration(self, db_session, other_user, fake_http):
        with pytest.raises(ValueError):
            await submit_label_requests(db_session, other_user, ["anything"])
