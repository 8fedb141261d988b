"""Checkout: turn a buyer's line items into a persisted order graph.

``create_order`` runs every write inside one transaction on the session it
is handed. Each step receives that session explicitly and only flushes;
the orchestrator alone commits or rolls back.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from flask import current_app
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload, selectinload

from orderflow.models import (
    Address,
    Order,
    OrderItem,
    OrderStatus,
    Payment,
    PaymentMethod,
    PaymentStatus,
    Shipment)
from orderflow.services.audit_service import log_audit
from orderflow.services.errors import (
    CheckoutValidationError,
    OrderCreationError,
    OrderNotFound)
from orderflow.services.identifiers import generate_transaction_id
from orderflow.services.shipments import provision_shipment
from orderflow.utils import paginate_query, to_decimal
import logging

logger = logging.getLogger(__name__)

ADDRESS_FIELDS = (
    'street',
    'ward',
    'district',
    'province',
    'zip_code',
    'country',
)


@dataclass
class LineItem:
    product_variant_id: int
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    discount_value: Optional[Decimal] = None


@dataclass
class ShippingAddressInput:
    street: str
    ward: str
    district: str
    province: str
    zip_code: str
    country: str


@dataclass
class CheckoutRequest:
    user_id: int
    payment_method: PaymentMethod
    address: ShippingAddressInput
    items: List[LineItem] = field(default_factory=list)
    carrier: Optional[str] = None
    currency_unit: Optional[str] = None


@dataclass(frozen=True)
class OrderTotals:
    sub_total: Decimal
    shipping_fee: Decimal
    discount: Decimal
    total_amount: Decimal


def compute_totals(items, shipping_fee=Decimal('0')) -> OrderTotals:
    sub_total = sum((Decimal(item.total_price) for item in items),
                    Decimal('0'))
    discount = sum(
        (Decimal(item.discount_value or 0) for item in items),
        Decimal('0'))
    shipping_fee = Decimal(shipping_fee)
    return OrderTotals(
        sub_total=sub_total,
        shipping_fee=shipping_fee,
        discount=discount,
        total_amount=sub_total + shipping_fee - discount,
    )


def _parse_line_item(index, raw) -> LineItem:
    if not isinstance(raw, dict):
        raise CheckoutValidationError(f'items[{index}] must be an object')

    for key in ('product_variant_id', 'quantity', 'unit_price',
                'total_price'):
        if raw.get(key) is None:
            raise CheckoutValidationError(
                f'items[{index}].{key} cannot be empty')

    try:
        product_variant_id = int(raw['product_variant_id'])
        quantity = int(raw['quantity'])
    except (TypeError, ValueError):
        raise CheckoutValidationError(
            f'items[{index}] ids and quantity must be integers')
    if quantity <= 0:
        raise CheckoutValidationError(
            f'items[{index}].quantity must be positive')

    try:
        unit_price = to_decimal(raw['unit_price'])
        total_price = to_decimal(raw['total_price'])
        discount_value = to_decimal(raw.get('discount_value') or 0)
    except (InvalidOperation, TypeError, ValueError):
        raise CheckoutValidationError(
            f'items[{index}] prices must be numbers')
    if not all(v.is_finite()
               for v in (unit_price, total_price, discount_value)):
        raise CheckoutValidationError(
            f'items[{index}] prices must be finite numbers')
    if min(unit_price, total_price, discount_value) < 0:
        raise CheckoutValidationError(
            f'items[{index}] prices cannot be negative')

    return LineItem(
        product_variant_id=product_variant_id,
        quantity=quantity,
        unit_price=unit_price,
        total_price=total_price,
        discount_value=discount_value,
    )


def build_checkout_request(data) -> CheckoutRequest:
    """Validate a checkout JSON body; nothing is persisted on failure."""
    if not data:
        raise CheckoutValidationError('Checkout body cannot be empty')
    if not isinstance(data, dict):
        raise CheckoutValidationError('Checkout body must be a JSON object')

    if data.get('user_id') is None:
        raise CheckoutValidationError('user_id cannot be empty')
    try:
        user_id = int(data['user_id'])
    except (TypeError, ValueError):
        raise CheckoutValidationError('user_id must be an integer')

    address_data = data.get('address') or {}
    if not address_data:
        raise CheckoutValidationError(
            'Address information cannot be empty')
    if not isinstance(address_data, dict):
        raise CheckoutValidationError('address must be an object')
    for key in ADDRESS_FIELDS:
        if not address_data.get(key):
            raise CheckoutValidationError(f'{key} cannot be empty')

    payment_method = data.get('payment_method')
    if (not isinstance(payment_method, str)
            or payment_method not in PaymentMethod.__members__):
        raise CheckoutValidationError(
            f'Unsupported payment method: {payment_method}')

    raw_items = data.get('items') or []
    if not isinstance(raw_items, list):
        raise CheckoutValidationError('items must be a list')
    if not raw_items:
        raise CheckoutValidationError('Order must contain at least one item')

    return CheckoutRequest(
        user_id=user_id,
        payment_method=PaymentMethod[payment_method],
        address=ShippingAddressInput(
            **{key: address_data[key] for key in ADDRESS_FIELDS}),
        items=[
            _parse_line_item(index, raw)
            for index, raw in enumerate(raw_items)
        ],
        carrier=data.get('carrier'),
        currency_unit=data.get('currency_unit'),
    )


def _persist_address(session, user_id, address: ShippingAddressInput):
    record = Address(
        user_id=user_id,
        street=address.street,
        ward=address.ward,
        district=address.district,
        province=address.province,
        zip_code=address.zip_code,
        country=address.country,
    )
    session.add(record)
    session.flush()
    return record


def _persist_order(session, user_id, address_id, totals, currency_unit,
                   now):
    order = Order(
        user_id=user_id,
        shipping_address_id=address_id,
        process_by_staff_id=None,
        order_date=now,
        status=OrderStatus.PENDING,
        sub_total=totals.sub_total,
        shipping_fee=totals.shipping_fee,
        discount=totals.discount,
        total_amount=totals.total_amount,
        currency_unit=currency_unit,
    )
    session.add(order)
    session.flush()
    return order


def _persist_order_item(session, order_id, item: LineItem, currency_unit):
    record = OrderItem(
        order_id=order_id,
        product_variant_id=item.product_variant_id,
        quantity=item.quantity,
        unit_price=item.unit_price,
        total_price=item.total_price,
        discount_value=item.discount_value or Decimal('0'),
        currency_unit=currency_unit,
    )
    session.add(record)
    session.flush()
    return record


def _persist_payment(session, order, payment_method, now):
    payment = Payment(
        order_id=order.id,
        transaction_id=generate_transaction_id(order.id, order.user_id, now),
        payment_method=payment_method,
        amount=order.total_amount,
        status=PaymentStatus.PENDING,
        payment_date=now,
        currency_unit=order.currency_unit,
    )
    session.add(payment)
    session.flush()
    return payment


def create_order(session, checkout: CheckoutRequest) -> Order:
    if not checkout.items:
        raise CheckoutValidationError('Order must contain at least one item')

    now = datetime.utcnow()
    currency_unit = (
        checkout.currency_unit
        or current_app.config['DEFAULT_CURRENCY_UNIT']
    )
    shipping_fee = to_decimal(current_app.config['ORDER_SHIPPING_FEE'])
    totals = compute_totals(checkout.items, shipping_fee)

    try:
        address = _persist_address(
            session, checkout.user_id, checkout.address)
        order = _persist_order(
            session, checkout.user_id, address.id, totals, currency_unit,
            now)
        for item in checkout.items:
            _persist_order_item(session, order.id, item, currency_unit)
        payment = _persist_payment(
            session, order, checkout.payment_method, now)

        shipment_id = None
        if checkout.payment_method == PaymentMethod.COD:
            shipment = provision_shipment(
                session,
                order.id,
                checkout.user_id,
                carrier=checkout.carrier,
                process_by_staff_id=None,
                now=now)
            shipment_id = shipment.id

        order_id = order.id
        payment_id = payment.id
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(
            "Failed to create order for user %s: %s",
            checkout.user_id,
            e,
            exc_info=True)
        raise OrderCreationError() from e

    logger.info(
        "Order created with ID: %s total=%s payment=%s shipment=%s",
        order_id,
        totals.total_amount,
        payment_id,
        shipment_id,
    )

    log_audit(
        actor_id=checkout.user_id,
        actor_role='CUSTOMER',
        action='ORDER_CREATE',
        target_type='ORDER',
        target_id=order_id,
        payload={
            'total_amount': str(totals.total_amount),
            'item_count': len(checkout.items),
            'payment_method': checkout.payment_method.value,
            'shipment_id': shipment_id,
        })

    return load_order_graph(session, order_id)


def load_order_graph(session, order_id) -> Optional[Order]:
    stmt = (
        select(Order)
        .options(
            joinedload(Order.shipping_address),
            joinedload(Order.payment),
            selectinload(Order.items),
            selectinload(Order.shipments),
        )
        .where(Order.id == order_id)
        .execution_options(populate_existing=True)
    )
    return session.execute(stmt).unique().scalar_one_or_none()


def get_order_detail(session, order_id) -> Order:
    order = load_order_graph(session, order_id)
    if order is None:
        raise OrderNotFound()
    logger.info("Fetched order detail information with ID: %s", order_id)
    return order


def list_orders(page=1, per_page=None):
    per_page = per_page or current_app.config['ITEMS_PER_PAGE']
    stmt = (
        select(Order)
        .options(joinedload(Order.payment), selectinload(Order.shipments))
        .order_by(Order.id.asc())
    )
    result = paginate_query(stmt, page=page, per_page=per_page)
    logger.info(
        "Fetched page %s of orders with %s orders per page.",
        page,
        per_page)
    return result


def _require_order(session, order_id) -> Order:
    order = session.get(Order, order_id)
    if order is None:
        raise OrderNotFound()
    return order


def list_order_items(session, order_id):
    _require_order(session, order_id)
    return session.execute(
        select(OrderItem)
        .where(OrderItem.order_id == order_id)
        .order_by(OrderItem.id)
    ).scalars().all()


def list_order_shipments(session, order_id):
    _require_order(session, order_id)
    return session.execute(
        select(Shipment)
        .where(Shipment.order_id == order_id)
        .order_by(Shipment.id)
    ).scalars().all()


def get_order_payment(session, order_id) -> Optional[Payment]:
    _require_order(session, order_id)
    return session.execute(
        select(Payment).where(Payment.order_id == order_id)
    ).scalar_one_or_none()
