"""Tests for the checkout orchestrator: totals, shipments and atomicity."""

import re
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from orderflow.models import (
    Address,
    AuditLog,
    Order,
    OrderItem,
    OrderStatus,
    Payment,
    PaymentMethod,
    PaymentStatus,
    Shipment,
    ShipmentStatus,
)
from orderflow.services import checkout
from orderflow.services.checkout import (
    CheckoutRequest,
    LineItem,
    ShippingAddressInput,
    build_checkout_request,
    compute_totals,
    create_order,
)
from orderflow.services.errors import (
    CheckoutValidationError,
    OrderCreationError,
    OrderNotFound,
)

from conftest import SHIPPING_ADDRESS


def _count(session, model):
    return session.scalar(select(func.count()).select_from(model))


def _place(session, body):
    return create_order(session, build_checkout_request(body))


class TestComputeTotals:
    def test_example_totals(self):
        items = [
            LineItem(1, 2, Decimal("50"), Decimal("100"), Decimal("10")),
            LineItem(2, 1, Decimal("50"), Decimal("50"), Decimal("0")),
        ]
        totals = compute_totals(items)
        assert totals.sub_total == Decimal("150")
        assert totals.discount == Decimal("10")
        assert totals.shipping_fee == Decimal("0")
        assert totals.total_amount == Decimal("140")

    def test_missing_discount_counts_as_zero(self):
        items = [LineItem(1, 1, Decimal("20"), Decimal("20"))]
        assert compute_totals(items).discount == Decimal("0")
        assert compute_totals(items).total_amount == Decimal("20")

    @pytest.mark.parametrize(
        "prices, discounts, fee",
        [
            (["10.50", "4.25"], ["0", "1.75"], "0"),
            (["99.99"], [None], "5"),
            (["1", "2", "3", "4"], ["0.5", None, "0.5", "0"], "12.30"),
        ],
    )
    def test_total_is_subtotal_plus_fee_minus_discount(
            self, prices, discounts, fee):
        items = [
            LineItem(i, 1, Decimal(p), Decimal(p),
                     Decimal(d) if d is not None else None)
            for i, (p, d) in enumerate(zip(prices, discounts))
        ]
        totals = compute_totals(items, Decimal(fee))
        expected = (
            sum(Decimal(p) for p in prices)
            + Decimal(fee)
            - sum(Decimal(d or 0) for d in discounts)
        )
        assert totals.total_amount == expected


class TestCodCheckout:
    def test_example_scenario(self, session, checkout_body):
        order = _place(session, checkout_body(payment_method="COD"))

        assert order.sub_total == Decimal("150")
        assert order.discount == Decimal("10")
        assert order.shipping_fee == Decimal("0")
        assert order.total_amount == Decimal("140")
        assert order.payment.amount == Decimal("140")
        assert order.payment.status == PaymentStatus.PENDING
        assert order.payment.payment_method == PaymentMethod.COD
        assert len(order.shipments) == 1
        assert order.shipments[0].status == ShipmentStatus.WAITING_FOR_PICKUP

    def test_order_starts_pending_and_unassigned(
            self, session, checkout_body, buyer):
        order = _place(session, checkout_body())

        assert order.status == OrderStatus.PENDING
        assert order.user_id == buyer.id
        assert order.process_by_staff_id is None
        assert order.order_date is not None
        assert order.currency_unit == "VND"

    def test_shipment_uses_default_carrier_and_no_staff(
            self, app, session, checkout_body):
        order = _place(session, checkout_body())
        shipment = order.shipments[0]

        assert shipment.carrier == app.config["DEFAULT_CARRIER"]
        assert shipment.process_by_staff_id is None
        assert shipment.order_id == order.id

    def test_supplied_carrier_is_used(self, session, checkout_body):
        order = _place(session, checkout_body(carrier="VNPost"))
        assert order.shipments[0].carrier == "VNPost"


class TestNonCodCheckout:
    @pytest.mark.parametrize(
        "method", [m.name for m in PaymentMethod if m != PaymentMethod.COD]
    )
    def test_no_shipment_until_paid(self, session, checkout_body, method):
        order = _place(session, checkout_body(payment_method=method))

        assert order.shipments == []
        assert order.payment.status == PaymentStatus.PENDING
        assert order.payment.payment_method == PaymentMethod[method]
        assert _count(session, Shipment) == 0

    def test_bank_transfer_totals(self, session, checkout_body):
        order = _place(session, checkout_body(payment_method="BANK_TRANSFER"))
        assert order.total_amount == Decimal("140")
        assert order.payment.amount == order.total_amount


class TestOrderGraph:
    def test_items_follow_input_order(self, session, checkout_body):
        order = _place(session, checkout_body())

        assert [i.product_variant_id for i in order.items] == [11, 12]
        assert [i.quantity for i in order.items] == [2, 1]
        assert all(i.order_id == order.id for i in order.items)

    def test_missing_item_discount_is_stored_as_zero(
            self, session, checkout_body):
        body = checkout_body(items=[{
            "product_variant_id": 3,
            "quantity": 1,
            "unit_price": 25,
            "total_price": 25,
        }])
        order = _place(session, body)

        assert order.items[0].discount_value == Decimal("0")
        assert order.discount == Decimal("0")
        assert order.total_amount == Decimal("25")

    def test_fresh_address_per_order(self, session, checkout_body, buyer):
        first = _place(session, checkout_body())
        second = _place(session, checkout_body())

        assert first.shipping_address_id != second.shipping_address_id
        assert _count(session, Address) == 2
        address = first.shipping_address
        assert address.user_id == buyer.id
        for key, value in SHIPPING_ADDRESS.items():
            assert getattr(address, key) == value

    def test_transaction_id_is_traceable(self, session, checkout_body, buyer):
        order = _place(session, checkout_body())
        assert re.fullmatch(
            rf"\d+-{order.id}-{buyer.id}-\d+",
            order.payment.transaction_id,
        )

    def test_configured_shipping_fee(self, app, session, checkout_body):
        app.config["ORDER_SHIPPING_FEE"] = "15"
        order = _place(session, checkout_body())

        assert order.shipping_fee == Decimal("15")
        assert order.total_amount == Decimal("155")
        assert order.payment.amount == Decimal("155")

    def test_order_create_is_audited(self, session, checkout_body, buyer):
        order = _place(session, checkout_body())
        audit = session.execute(
            select(AuditLog).where(AuditLog.action == "ORDER_CREATE")
        ).scalar_one()

        assert audit.target_id == order.id
        assert audit.actor_id == buyer.id
        assert audit.get_payload()["payment_method"] == "COD"


class TestAtomicity:
    def _assert_nothing_persisted(self, session):
        for model in (Address, Order, OrderItem, Payment, Shipment):
            assert _count(session, model) == 0, model.__name__

    def test_failing_item_rolls_back_everything(self, session, buyer):
        request = CheckoutRequest(
            user_id=buyer.id,
            payment_method=PaymentMethod.COD,
            address=ShippingAddressInput(**SHIPPING_ADDRESS),
            items=[
                LineItem(1, 1, Decimal("10"), Decimal("10")),
                # violates check_order_quantity_positive
                LineItem(2, 0, Decimal("10"), Decimal("0")),
            ],
        )

        with pytest.raises(OrderCreationError, match="Failed to create order"):
            create_order(session, request)

        self._assert_nothing_persisted(session)

    def test_failing_payment_step_rolls_back_everything(
            self, session, checkout_body, monkeypatch):
        def boom(*args, **kwargs):
            raise SQLAlchemyError("payments table unavailable")

        monkeypatch.setattr(checkout, "_persist_payment", boom)

        with pytest.raises(OrderCreationError) as excinfo:
            _place(session, checkout_body())

        assert isinstance(excinfo.value.__cause__, SQLAlchemyError)
        self._assert_nothing_persisted(session)

    def test_failing_shipment_rolls_back_cod_checkout(
            self, session, checkout_body, monkeypatch):
        def boom(*args, **kwargs):
            raise SQLAlchemyError("shipments table unavailable")

        monkeypatch.setattr(checkout, "provision_shipment", boom)

        with pytest.raises(OrderCreationError):
            _place(session, checkout_body(payment_method="COD"))

        self._assert_nothing_persisted(session)

    def test_empty_items_rejected_before_persistence(self, session, buyer):
        request = CheckoutRequest(
            user_id=buyer.id,
            payment_method=PaymentMethod.COD,
            address=ShippingAddressInput(**SHIPPING_ADDRESS),
            items=[],
        )
        with pytest.raises(CheckoutValidationError):
            create_order(session, request)
        self._assert_nothing_persisted(session)


class TestBuildCheckoutRequest:
    def test_parses_valid_body(self, checkout_body, buyer):
        request = build_checkout_request(checkout_body(carrier="GrabExpress"))

        assert request.user_id == buyer.id
        assert request.payment_method == PaymentMethod.COD
        assert request.carrier == "GrabExpress"
        assert request.items[0].total_price == Decimal("100")
        assert request.items[1].discount_value == Decimal("0")

    @pytest.mark.parametrize("field", list(SHIPPING_ADDRESS))
    def test_missing_address_field(self, checkout_body, field):
        body = checkout_body()
        del body["address"][field]
        with pytest.raises(CheckoutValidationError, match=field):
            build_checkout_request(body)

    def test_unknown_payment_method(self, checkout_body):
        with pytest.raises(CheckoutValidationError, match="payment method"):
            build_checkout_request(checkout_body(payment_method="CASH"))

    def test_empty_items(self, checkout_body):
        with pytest.raises(CheckoutValidationError, match="at least one"):
            build_checkout_request(checkout_body(items=[]))

    def test_non_positive_quantity(self, checkout_body):
        body = checkout_body()
        body["items"][0]["quantity"] = 0
        with pytest.raises(CheckoutValidationError, match="positive"):
            build_checkout_request(body)

    def test_negative_price(self, checkout_body):
        body = checkout_body()
        body["items"][1]["unit_price"] = -1
        with pytest.raises(CheckoutValidationError, match="negative"):
            build_checkout_request(body)

    def test_non_numeric_price(self, checkout_body):
        body = checkout_body()
        body["items"][0]["total_price"] = "a lot"
        with pytest.raises(CheckoutValidationError, match="numbers"):
            build_checkout_request(body)

    @pytest.mark.parametrize(
        "field, value",
        [
            ("unit_price", "NaN"),
            ("unit_price", float("nan")),
            ("total_price", "Infinity"),
            ("discount_value", float("-inf")),
        ],
    )
    def test_non_finite_price(self, checkout_body, field, value):
        body = checkout_body()
        body["items"][0][field] = value
        with pytest.raises(CheckoutValidationError, match="finite"):
            build_checkout_request(body)

    @pytest.mark.parametrize("data", [[1], "checkout", 42])
    def test_body_must_be_object(self, data):
        with pytest.raises(CheckoutValidationError, match="JSON object"):
            build_checkout_request(data)

    def test_address_must_be_object(self, checkout_body):
        body = checkout_body(address="12 Nguyen Hue, District 1")
        with pytest.raises(CheckoutValidationError, match="address"):
            build_checkout_request(body)

    def test_non_string_payment_method(self, checkout_body):
        with pytest.raises(CheckoutValidationError, match="payment method"):
            build_checkout_request(checkout_body(payment_method=["COD"]))

    def test_items_must_be_list(self, checkout_body):
        with pytest.raises(CheckoutValidationError, match="list"):
            build_checkout_request(checkout_body(items=5))

    def test_missing_user(self, checkout_body):
        body = checkout_body()
        del body["user_id"]
        with pytest.raises(CheckoutValidationError, match="user_id"):
            build_checkout_request(body)


class TestOrderReads:
    def test_get_order_detail(self, session, checkout_body):
        order = _place(session, checkout_body())
        detail = checkout.get_order_detail(session, order.id)
        assert detail.id == order.id
        assert len(detail.items) == 2

    def test_get_missing_order(self, session):
        with pytest.raises(OrderNotFound):
            checkout.get_order_detail(session, 999)

    def test_list_order_children(self, session, checkout_body):
        order = _place(session, checkout_body())

        assert len(checkout.list_order_items(session, order.id)) == 2
        assert len(checkout.list_order_shipments(session, order.id)) == 1
        payment = checkout.get_order_payment(session, order.id)
        assert payment.order_id == order.id

    def test_list_children_of_missing_order(self, session):
        with pytest.raises(OrderNotFound):
            checkout.list_order_items(session, 404)

    def test_list_orders_paginates(self, session, checkout_body):
        for _ in range(3):
            _place(session, checkout_body())

        page = checkout.list_orders(page=1, per_page=2)
        assert page["total"] == 3
        assert len(page["items"]) == 2
        assert page["has_next"] is True
