"""Payment status updates and the shipment they may trigger.

The status write is a compare-and-swap keyed on the status observed when
the payment was read, and any shipment it provisions is added in the same
transaction. Two handlers racing from the same PENDING read can therefore
never both provision a shipment: the loser's update matches no row and
raises ``PaymentConflict``.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from flask import current_app
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload

from orderflow.models import Payment, PaymentMethod, PaymentStatus, Shipment
from orderflow.services.audit_service import log_audit
from orderflow.services.errors import (
    PaymentConflict,
    PaymentNotFound,
    PaymentUpdateError,
    PaymentValidationError)
from orderflow.services.payment_transitions import resolve_transition
from orderflow.services.shipments import provision_shipment
from orderflow.utils import paginate_query
import logging

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    'status',
    'payment_method',
    'payment_date',
    'transaction_id',
)


@dataclass(frozen=True)
class PaymentState:
    payment_id: int
    order_id: int
    buyer_id: int
    status: PaymentStatus
    payment_method: PaymentMethod


def _parse_changes(changes):
    unknown = set(changes) - set(UPDATABLE_FIELDS)
    if unknown:
        raise PaymentValidationError(
            f"Fields cannot be updated: {', '.join(sorted(unknown))}")

    values = {}
    if 'payment_method' in changes:
        method = changes['payment_method']
        if isinstance(method, PaymentMethod):
            values['payment_method'] = method
        elif isinstance(method, str) and method in PaymentMethod.__members__:
            values['payment_method'] = PaymentMethod[method]
        else:
            raise PaymentValidationError(
                f'Unsupported payment method: {method}')

    if 'payment_date' in changes:
        payment_date = changes['payment_date']
        if isinstance(payment_date, str):
            try:
                payment_date = datetime.fromisoformat(payment_date)
            except ValueError:
                raise PaymentValidationError(
                    'payment_date must be an ISO 8601 timestamp')
        if not isinstance(payment_date, datetime):
            raise PaymentValidationError(
                'payment_date must be an ISO 8601 timestamp')
        values['payment_date'] = payment_date

    if 'transaction_id' in changes:
        if not changes['transaction_id']:
            raise PaymentValidationError('transaction_id cannot be empty')
        values['transaction_id'] = str(changes['transaction_id'])

    return values


def _has_shipment(session, order_id) -> bool:
    # A COD order holds its checkout shipment even after its payment method
    # is edited.
    return session.execute(
        select(Shipment.id).where(Shipment.order_id == order_id).limit(1)
    ).first() is not None


def read_payment_state(session, payment_id) -> PaymentState:
    payment = session.execute(
        select(Payment)
        .options(joinedload(Payment.order))
        .where(Payment.id == payment_id)
    ).scalar_one_or_none()
    if payment is None:
        raise PaymentNotFound()
    return PaymentState(
        payment_id=payment.id,
        order_id=payment.order_id,
        buyer_id=payment.order.user_id,
        status=payment.status,
        payment_method=payment.payment_method,
    )


def apply_payment_update(
        session,
        observed: PaymentState,
        changes,
        carrier=None) -> Payment:
    """Apply ``changes`` to the payment last seen as ``observed``."""
    values = _parse_changes(changes)
    transition = resolve_transition(
        observed.status, changes.get('status', observed.status))

    if transition.is_noop and not values:
        logger.info(
            "Payment %s already %s, nothing to update",
            observed.payment_id,
            observed.status.value)
        return session.get(Payment, observed.payment_id)

    values['status'] = transition.target
    shipment_id = None
    try:
        result = session.execute(
            update(Payment)
            .where(
                Payment.id == observed.payment_id,
                Payment.status == observed.status)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            session.rollback()
            logger.warning(
                "Payment %s changed since it was read as %s",
                observed.payment_id,
                observed.status.value)
            raise PaymentConflict()

        if (transition.provisions_shipment
                and not _has_shipment(session, observed.order_id)):
            carrier = carrier or current_app.config['DEFAULT_CARRIER']
            shipment = provision_shipment(
                session,
                observed.order_id,
                observed.buyer_id,
                carrier=carrier,
                process_by_staff_id=None)
            shipment_id = shipment.id

        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(
            "Failed to update payment %s: %s",
            observed.payment_id,
            e,
            exc_info=True)
        raise PaymentUpdateError() from e

    logger.info(
        "Updated payment with ID: %s %s -> %s shipment=%s",
        observed.payment_id,
        transition.current.value,
        transition.target.value,
        shipment_id)

    update_payload = {
        'from': transition.current.value,
        'to': transition.target.value,
        'fields': sorted(changes),
    }
    if shipment_id is not None:
        update_payload['shipment_id'] = shipment_id
        update_payload['carrier'] = carrier
    log_audit(
        action='PAYMENT_UPDATE',
        target_type='PAYMENT',
        target_id=observed.payment_id,
        payload=update_payload)
    if shipment_id is not None:
        log_audit(
            action='SHIPMENT_PROVISION',
            target_type='SHIPMENT',
            target_id=shipment_id,
            payload={
                'order_id': observed.order_id,
                'payment_id': observed.payment_id,
                'carrier': carrier,
            })

    return session.get(Payment, observed.payment_id)


def update_payment(session, payment_id, changes, carrier=None) -> Payment:
    observed = read_payment_state(session, payment_id)
    return apply_payment_update(session, observed, changes, carrier=carrier)


def get_payment(session, payment_id) -> Optional[Payment]:
    payment = session.get(Payment, payment_id)
    if payment is None:
        raise PaymentNotFound()
    logger.info("Fetched payment with ID: %s", payment_id)
    return payment


def list_payments(page=1, per_page=None):
    per_page = per_page or current_app.config['ITEMS_PER_PAGE']
    result = paginate_query(
        select(Payment).order_by(Payment.id.asc()),
        page=page,
        per_page=per_page)
    logger.info(
        "Fetched all payments - Page: %s, Per Page: %s", page, per_page)
    return result
