from flask import current_app
from orderflow.models import Shipment, ShipmentStatus
from orderflow.services.identifiers import generate_tracking_number
from datetime import datetime, timedelta
import logging

logger = logging.getLogger(__name__)


def estimate_shipment_dates(now=None):
    """Return ``(estimated_ship_date, estimated_delivery)`` for ``now``.

    Both offsets come from config. The delivery offset defaults to one day,
    which lands before the two-day ship date; it is kept configurable until
    transit times are known.
    """
    now = now or datetime.utcnow()
    ship_offset = current_app.config.get('SHIPMENT_SHIP_OFFSET_DAYS', 2)
    delivery_offset = current_app.config.get(
        'SHIPMENT_DELIVERY_OFFSET_DAYS', 1)
    return (
        now + timedelta(days=ship_offset),
        now + timedelta(days=delivery_offset),
    )


def provision_shipment(
        session,
        order_id,
        buyer_id,
        carrier=None,
        process_by_staff_id=None,
        now=None):
    """Add one WAITING_FOR_PICKUP shipment for ``order_id`` to ``session``.

    The caller owns the transaction: this flushes to obtain the id but never
    commits. No check is made for an existing shipment on the order.
    """
    now = now or datetime.utcnow()
    carrier = carrier or current_app.config['DEFAULT_CARRIER']
    estimated_ship_date, estimated_delivery = estimate_shipment_dates(now)

    shipment = Shipment(
        order_id=order_id,
        process_by_staff_id=process_by_staff_id,
        carrier=carrier,
        tracking_number=generate_tracking_number(order_id, buyer_id, now),
        estimated_ship_date=estimated_ship_date,
        estimated_delivery=estimated_delivery,
        status=ShipmentStatus.WAITING_FOR_PICKUP,
    )
    session.add(shipment)
    session.flush()

    logger.info(
        "Shipment %s provisioned for order %s carrier=%s tracking=%s",
        shipment.id,
        order_id,
        carrier,
        shipment.tracking_number,
    )
    return shipment
