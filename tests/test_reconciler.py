"""
Order reconciliation: upsert by (user, marketplace, key) with replace-on-sync items
"""
from decimal import Decimal

import pytest

from labelsync.models import Order, OrderItem
from labelsync.services import order_reconciler
from labelsync.services.marketplaces import veeqo
from labelsync.services.order_reconciler import reconcile


def _veeqo(order_id=555, line_items=None, **extra):
    raw = {
        "id": order_id,
        "status": {"name": "Awaiting Fulfillment"},
        "line_items": line_items if line_items is not None else [
            {"id": 1, "sku": "A1", "quantity": 2, "price_before_discount_including_tax": 10},
        ],
    }
    raw.update(extra)
    return veeqo.normalize_order(raw)


THREE_ITEMS = [
    {"id": 1, "sku": "A1", "quantity": 1, "price_before_discount_including_tax": 5},
    {"id": 2, "sku": "B2", "quantity": 1, "price_before_discount_including_tax": 6},
    {"id": 3, "sku": "C3", "quantity": 1, "price_before_discount_including_tax": 7},
]


class TestReconcile:
    def test_creates_order_with_items(self, db_session, user):
        result = reconcile(db_session, user.id, _veeqo())

        assert result.created is True
        order = db_session.query(Order).filter(Order.id == result.order_id).one()
        assert order.marketplace_key == "555"
        assert order.source == "veeqo"
        assert order.status == "AWAITING_FULFILLMENT"
        assert order.customer_name == "Unknown Customer"
        assert order.shipping_address["name"] == "Unknown Customer"
        assert len(order.items) == 1
        assert order.items[0].sku == "A1"
        assert order.items[0].total_price == Decimal("20.00")

    def test_second_reconcile_updates_in_place(self, db_session, user):
        first = reconcile(db_session, user.id, _veeqo())
        second = reconcile(db_session, user.id, _veeqo(status={"name": "Shipped"}))

        assert second.created is False
        assert second.order_id == first.order_id
        assert db_session.query(Order).count() == 1
        order = db_session.query(Order).one()
        assert order.status == "SHIPPED"
        assert db_session.query(OrderItem).count() == 1

    def test_items_are_replaced_not_merged(self, db_session, user):
        reconcile(db_session, user.id, _veeqo(line_items=THREE_ITEMS))
        assert db_session.query(OrderItem).count() == 3

        reconcile(db_session, user.id, _veeqo(line_items=[THREE_ITEMS[1]]))

        order = db_session.query(Order).one()
        assert [item.sku for item in order.items] == ["B2"]
        assert db_session.query(OrderItem).count() == 1

    def test_empty_item_list_clears_items(self, db_session, user):
        reconcile(db_session, user.id, _veeqo(line_items=THREE_ITEMS))
        reconcile(db_session, user.id, _veeqo(line_items=[]))
        assert db_session.query(OrderItem).count() == 0

    def test_same_key_for_different_users_is_separate(self, db_session, user, other_user):
        a = reconcile(db_session, user.id, _veeqo())
        b = reconcile(db_session, other_user.id, _veeqo())

        assert a.created and b.created
        assert a.order_id != b.order_id
        assert db_session.query(Order).count() == 2

    def test_same_key_in_different_marketplace_is_separate(self, db_session, user):
        reconcile(db_session, user.id, _veeqo())
        reconcile(db_session, user.id, _veeqo(channel={"name": "ebay"}))

        assert sorted(o.marketplace for o in db_session.query(Order).all()) == ["Ebay", "Veeqo"]

    def test_failed_update_leaves_previous_state(self, db_session, user, monkeypatch):
        reconcile(db_session, user.id, _veeqo(line_items=THREE_ITEMS))

        def boom(order_id, item):
            raise RuntimeError("disk full")

        monkeypatch.setattr(order_reconciler, "_build_item", boom)
        with pytest.raises(RuntimeError):
            reconcile(db_session, user.id, _veeqo(status={"name": "Shipped"}, line_items=[THREE_ITEMS[0]]))

        order = db_session.query(Order).one()
        assert order.status == "AWAITING_FULFILLMENT"
        assert sorted(item.sku for item in order.items) == ["A1", "B2", "C3"]

    def test_concurrent_insert_falls_back_to_update(self, db_session, user, monkeypatch):
        reconcile(db_session, user.id, _veeqo(line_items=THREE_ITEMS))

        real_find = order_reconciler.find_order
        calls = {"n": 0}

        def stale_find(*args, **kwargs):
            # First lookup misses, as if another sync inserted between lookup and insert
            calls["n"] += 1
            if calls["n"] == 1:
                return None
            return real_find(*args, **kwargs)

        monkeypatch.setattr(order_reconciler, "find_order", stale_find)
        result = reconcile(db_session, user.id, _veeqo(line_items=[THREE_ITEMS[2]]))

        assert result.created is False
        assert db_session.query(Order).count() == 1
        assert [item.sku for item in db_session.query(Order).one().items] == ["C3"]
