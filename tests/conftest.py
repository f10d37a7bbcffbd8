from collections.abc import Callable
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from dateutil import tz

from coinbasis.config import config
from coinbasis.rawtransaction import RawTransaction
from coinbasis.typing import TransactionId


@pytest.fixture(autouse=True)
def config_reset():
    config.reset()
    config.timezone = tz.UTC
    yield


@pytest.fixture
def make_raw() -> Callable[..., RawTransaction]:
    count = 0

    def _wrapper(
        tr_type: str,
        amount: str,
        timestamp: datetime,
        native_amount: str | None = None,
        has_to: bool = False,
        has_from: bool = False,
        native_currency: str = "USD",
    ) -> RawTransaction:
        nonlocal count
        count += 1

        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)

        return RawTransaction(
            id=TransactionId(f"TX{count}"),
            updated_at=timestamp,
            amount=Decimal(amount),
            currency="BTC",
            type=tr_type,
            has_to=has_to,
            has_from=has_from,
            native_amount=Decimal(native_amount) if native_amount else None,
            native_currency=native_currency if native_amount else None,
        )

    return _wrapper
