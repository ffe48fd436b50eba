"""
Tests for order lookup: matching, status mapping, delivery estimate, rendering.
"""

import pytest

from app.models import OrderRecord
from policies.rules import estimated_delivery, status_label
from tools.orders import (
    MISSING_IDENTIFIER_REPLY,
    extract_identifier,
    lookup_order_number,
    lookup_orders,
)
from tools.shopify import BackendError


class TestStatusMapping:
    @pytest.mark.parametrize(
        "backend_state,label",
        [
            ("fulfilled", "Delivered"),
            ("partial", "Partially Shipped"),
            ("restocked", "Returned"),
            ("pending", "Pending"),
            (None, "Processing"),
            ("unfulfilled", "Processing"),
            ("", "Processing"),
        ],
    )
    def test_exact_labels(self, backend_state, label):
        assert status_label(backend_state) == label

    @pytest.mark.parametrize(
        "backend_state,label",
        [
            ("fulfilled", "Delivered"),
            ("partial", "Partially Shipped"),
            ("restocked", "Returned"),
            ("pending", "Pending"),
            (None, "Processing"),
        ],
    )
    def test_handler_uses_mapped_label(self, shop_factory, order_factory, backend_state, label):
        shop = shop_factory(orders=[order_factory(phone="+919812345678", fulfillment_status=backend_state)])

        reply = lookup_orders("5678", shop)

        assert reply.data["orders"][0]["status"] == label
        assert f"Status: {label}" in reply.text


class TestDeliveryEstimate:
    def test_created_plus_four_days(self):
        assert estimated_delivery("2024-10-03T10:00:00+05:30") == "07 October 2024"

    def test_zulu_timestamp(self):
        assert estimated_delivery("2024-12-30T23:00:00Z") == "03 January 2025"

    @pytest.mark.parametrize("value", [None, "", "yesterday"])
    def test_unusable_timestamp_is_na(self, value):
        assert estimated_delivery(value) == "N/A"


class TestMatching:
    def test_note_only_match_returns_exactly_that_order(self, shop_factory, order_factory):
        orders = [
            order_factory(id="1", name="#1001", phone="+911111111111", note="gift wrap please"),
            order_factory(id="2", name="#1002", note="alt contact 98765 after 6pm"),
            order_factory(id="3", name="#1003", shipping_phone="+912222222222"),
        ]
        shop = shop_factory(orders=orders)

        reply = lookup_orders("98765", shop)

        assert [o["id"] for o in reply.data["orders"]] == ["2"]
        assert "#1002" in reply.text

    def test_all_matches_returned_in_backend_order(self, shop_factory, order_factory):
        orders = [
            order_factory(id="7", name="#1007", phone="+919800012345"),
            order_factory(id="8", name="#1008", phone="+917700000000"),
            order_factory(id="9", name="#1009", shipping_phone="+919900012345"),
        ]
        shop = shop_factory(orders=orders)

        reply = lookup_orders("12345", shop)

        assert [o["id"] for o in reply.data["orders"]] == ["7", "9"]
        assert reply.text.index("#1007") < reply.text.index("#1009")

    def test_fetches_every_status(self, shop_factory):
        shop = shop_factory()

        lookup_orders("98765", shop)

        assert shop.calls == ["list_orders:any"]

    @pytest.mark.parametrize("fragment", ["", "   ", None])
    def test_blank_identifier_makes_no_backend_call(self, shop_factory, fragment):
        shop = shop_factory()

        reply = lookup_orders(fragment, shop)

        assert reply.text == MISSING_IDENTIFIER_REPLY
        assert shop.calls == []

    def test_no_match_is_a_normal_reply(self, shop_factory, order_factory):
        shop = shop_factory(orders=[order_factory(phone="+911111111111")])

        reply = lookup_orders("98765", shop)

        assert "No order found" in reply.text
        assert reply.data == {"orders": []}

    def test_backend_failure_propagates(self, shop_factory):
        with pytest.raises(BackendError):
            lookup_orders("98765", shop_factory(fail=True))


class TestRendering:
    def test_block_contents(self, shop_factory, order_factory):
        order = order_factory(
            phone="98765",
            fulfillment_status="fulfilled",
            total_price="1299.00",
            currency="INR",
            tracking_url="https://track.test/abc",
        )
        reply = lookup_orders("98765", shop_factory(orders=[order]))

        assert "Order #1001" in reply.text
        assert "Customer: Asha Rao" in reply.text
        assert "Total: 1299.00 INR" in reply.text
        assert "Estimated delivery: 07 October 2024" in reply.text
        assert "Tracking: https://track.test/abc" in reply.text

    def test_placeholders(self, shop_factory, order_factory):
        order = order_factory(phone="98765", customer_name="", tracking_url=None, created_at="")
        reply = lookup_orders("98765", shop_factory(orders=[order]))

        assert "Customer: Customer" in reply.text
        assert "Tracking: Not available yet" in reply.text
        assert "Estimated delivery: N/A" in reply.text


class TestFromShopify:
    def test_contact_fields_and_defaults(self):
        order = OrderRecord.from_shopify(
            {
                "id": 450789469,
                "name": "#1001",
                "phone": None,
                "note": "call 98765",
                "current_total_price": "598.94",
                "currency": "INR",
                "created_at": "2024-10-03T10:00:00-04:00",
                "fulfillment_status": None,
                "shipping_address": {"phone": "+91 98765 43210"},
                "customer": {"first_name": "Asha", "last_name": None},
                "fulfillments": [{"tracking_url": None}, {"tracking_url": "https://track.test/1"}],
            }
        )

        assert order.id == "450789469"
        assert order.phone == ""
        assert order.shipping_phone == "+91 98765 43210"
        assert order.customer_name == "Asha"
        assert order.total_price == "598.94"
        assert order.tracking_url == "https://track.test/1"

    def test_missing_everything(self):
        order = OrderRecord.from_shopify({"id": 1})

        assert order.total_price == "0"
        assert order.note == ""
        assert order.tracking_url is None


class TestExtractIdentifier:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("track 98765", "98765"),
            ("my number is 9876543210 please", "9876543210"),
            ("order for asha@example.com", "asha@example.com"),
            ("email asha@example.com phone 9876543210", "9876543210"),
            ("asha2024@example.com, no phone", "asha2024@example.com"),
            ("where is my order", ""),
            ("track 12", ""),
        ],
    )
    def test_extraction(self, text, expected):
        assert extract_identifier(text) == expected


class TestOrderNumberLookup:
    def test_found(self, shop_factory, order_factory):
        shop = shop_factory(orders=[order_factory(name="#1001", fulfillment_status="partial")])

        reply = lookup_order_number("#1001", shop)

        assert shop.calls == ["find_orders_by_name:1001"]
        assert "Partially Shipped" in reply.text

    def test_not_found(self, shop_factory):
        reply = lookup_order_number("2002", shop_factory())

        assert reply.text == "No order found with ID #2002"
