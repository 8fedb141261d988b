"""Tests for tracking number and transaction id composition."""

import re
from datetime import datetime, timezone

from orderflow.services import identifiers
from orderflow.services.identifiers import (
    RANDOM_SUFFIX_BOUND,
    generate_tracking_number,
    generate_transaction_id,
)

NOW = datetime(2026, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)
NOW_MILLIS = int(NOW.timestamp() * 1000)


class TestTrackingNumber:
    def test_format(self):
        value = generate_tracking_number(42, 7)
        assert re.fullmatch(r"\d{13}-42-7-\d{1,7}", value)

    def test_uses_epoch_millis_and_random_suffix(self, monkeypatch):
        monkeypatch.setattr(
            identifiers.secrets, "randbelow", lambda bound: 1234567
        )
        assert generate_tracking_number(42, 7, now=NOW) == (
            f"{NOW_MILLIS}-42-7-1234567"
        )

    def test_naive_datetime_is_treated_as_utc(self):
        naive = NOW.replace(tzinfo=None)
        value = generate_tracking_number(1, 2, now=naive)
        assert value.startswith(f"{NOW_MILLIS}-1-2-")

    def test_suffix_stays_below_bound(self):
        for _ in range(200):
            suffix = int(generate_tracking_number(1, 1).rsplit("-", 1)[1])
            assert 0 <= suffix < RANDOM_SUFFIX_BOUND


class TestTransactionId:
    def test_format(self):
        value = generate_transaction_id(5, 9, now=NOW)
        assert value.startswith(f"{NOW_MILLIS}-5-9-")

    def test_consecutive_ids_differ(self):
        values = {generate_transaction_id(5, 9, now=NOW) for _ in range(50)}
        assert len(values) > 1
