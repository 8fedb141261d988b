"""Traceable identifiers for shipments and payments.

Both formats are ``{epoch_millis}-{order_id}-{buyer_id}-{suffix}`` where the
suffix is drawn from ``0..9_999_999``. They are unique in practice only; the
unique constraints on ``shipments.tracking_number`` and
``payments.transaction_id`` are what the store enforces.
"""
from datetime import datetime, timezone
import secrets

RANDOM_SUFFIX_BOUND = 10_000_000


def _epoch_millis(now=None) -> int:
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return int(now.timestamp() * 1000)


def _compose(order_id, buyer_id, now=None) -> str:
    suffix = secrets.randbelow(RANDOM_SUFFIX_BOUND)
    return f"{_epoch_millis(now)}-{order_id}-{buyer_id}-{suffix}"


def generate_tracking_number(order_id, buyer_id, now=None) -> str:
    return _compose(order_id, buyer_id, now)


def generate_transaction_id(order_id, buyer_id, now=None) -> str:
    return _compose(order_id, buyer_id, now)
