from __future__ import annotations

import itertools
import logging
import operator
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from functools import reduce
from typing import TYPE_CHECKING, ClassVar, TypeAlias

from moneyed import Currency, Money

from coinbasis.const import SECONDS_PER_DAY
from coinbasis.exceptions import (
    AlreadyResolvedError,
    InvalidSplitError,
    ValidationError,
)
from coinbasis.utils import format_timestamp

if TYPE_CHECKING:
    from coinbasis.transaction import Transaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Divested:
    transaction: Transaction
    time: datetime
    rate: Decimal
    price: Money


@dataclass(frozen=True)
class Split:
    cover: Holding
    remainder: Holding
    time: datetime


Resolution: TypeAlias = Divested | Split | None


@dataclass(eq=False)
class Holding:
    """A lot of currency acquired at a known time and rate.

    A holding is open until it is either divested by an outgoing
    transaction or split into a cover part and a remainder part. Either
    can happen only once.
    """

    amount: Decimal
    acquisition_time: datetime
    acquisition_rate: Decimal
    currency: Currency
    source: Transaction | Holding = field(repr=False)
    number: int = field(init=False)
    resolution: Resolution = field(default=None, init=False, repr=False)

    _counter: ClassVar[Iterator[int]] = itertools.count(1)

    def __post_init__(self) -> None:
        self.number = next(Holding._counter)

    @classmethod
    def acquire(cls, tx: Transaction) -> Holding:
        return cls(
            amount=tx.amount,
            acquisition_time=tx.time,
            acquisition_rate=tx.exchange_rate,
            currency=tx.native_currency,
            source=tx,
        )

    @property
    def acquisition_price(self) -> Money:
        if self.acquisition_rate == 0:
            return self.currency.zero
        return Money(self.amount * self.acquisition_rate, self.currency)

    @property
    def acquisition_transaction(self) -> Transaction | None:
        return None if isinstance(self.source, Holding) else self.source

    @property
    def acquisition_split(self) -> Holding | None:
        return self.source if isinstance(self.source, Holding) else None

    @property
    def is_open(self) -> bool:
        return self.resolution is None

    def is_long_term(self, cutoff: datetime) -> bool:
        return self.acquisition_time < cutoff

    def divest(self, tx: Transaction) -> Holding:
        self._check_open()
        self.resolution = Divested(
            transaction=tx,
            time=tx.time,
            rate=tx.exchange_rate,
            price=Money(self.amount * tx.exchange_rate, tx.native_currency),
        )
        return self

    def split(self, amount: Decimal, time: datetime) -> tuple[Holding, Holding]:
        self._check_open()
        if not Decimal("0") < amount <= self.amount:
            raise InvalidSplitError(self, amount)

        cover = Holding(
            amount=amount,
            acquisition_time=self.acquisition_time,
            acquisition_rate=self.acquisition_rate,
            currency=self.currency,
            source=self,
        )
        remainder = Holding(
            amount=self.amount - amount,
            acquisition_time=self.acquisition_time,
            acquisition_rate=self.acquisition_rate,
            currency=self.currency,
            source=self,
        )
        self.resolution = Split(cover=cover, remainder=remainder, time=time)

        logger.debug(
            "Split holding %s into %s (cover) and %s (remainder)",
            self.number,
            cover.number,
            remainder.number,
        )

        return cover, remainder

    def _check_open(self) -> None:
        if self.resolution is not None:
            raise AlreadyResolvedError(self)

    @property
    def divested_by(self) -> Transaction | None:
        match self.resolution:
            case Divested(transaction=tx):
                return tx
            case _:
                return None

    @property
    def divestment_time(self) -> datetime | None:
        match self.resolution:
            case Divested(time=time):
                return time
            case _:
                return None

    @property
    def divestment_rate(self) -> Decimal | None:
        match self.resolution:
            case Divested(rate=rate):
                return rate
            case _:
                return None

    @property
    def divestment_price(self) -> Money | None:
        match self.resolution:
            case Divested(price=price):
                return price
            case _:
                return None

    @property
    def split_into(self) -> tuple[Holding, Holding] | None:
        match self.resolution:
            case Split(cover=cover, remainder=remainder):
                return cover, remainder
            case _:
                return None

    @property
    def split_time(self) -> datetime | None:
        match self.resolution:
            case Split(time=time):
                return time
            case _:
                return None

    @property
    def duration(self) -> timedelta | None:
        if (divestment_time := self.divestment_time) is None:
            return None
        return divestment_time - self.acquisition_time

    @property
    def gain(self) -> Money | None:
        if (divestment_price := self.divestment_price) is None:
            return None
        return divestment_price - self.acquisition_price

    @property
    def time_acquired(self) -> str:
        return format_timestamp(self.acquisition_time)

    @property
    def time_divested(self) -> str | None:
        match self.resolution:
            case Divested(time=time) | Split(time=time):
                return format_timestamp(time)
            case _:
                return None

    def __str__(self) -> str:
        match self.resolution:
            case Divested(time=time, rate=rate, price=price):
                days = (time - self.acquisition_time).total_seconds() / SECONDS_PER_DAY
                return (
                    f"Amount {self.amount:11.8f}; "
                    f"Acquired At {self.time_acquired}, "
                    f"Divested At {self.time_divested}, "
                    f"Held for {days:10.6f} days; "
                    f"Divested @ {rate:12.6f} for {price.amount:9.2f}, "
                    f"Acquired @ {self.acquisition_rate:12.6f} "
                    f"for {self.acquisition_price.amount:9.2f}; "
                    f"Capital Gain {(price - self.acquisition_price).amount:8.2f}"
                )
            case Split(time=time):
                days = (time - self.acquisition_time).total_seconds() / SECONDS_PER_DAY
                return (
                    f"Amount {self.amount:11.8f}; "
                    f"Acquired At {self.time_acquired}, "
                    f"Split At {self.time_divested}, "
                    f"Held for {days:10.6f} days"
                )
            case _:
                return f"Amount {self.amount:11.8f}; Acquired At {self.time_acquired}"


class Holdings:
    """An append-only bucket of holdings with a running total amount."""

    def __init__(self) -> None:
        self._holdings: dict[int, Holding] = {}
        self._total = Decimal("0")

    @property
    def amount(self) -> Decimal:
        return self._total

    @property
    def count(self) -> int:
        return len(self._holdings)

    def add(self, *holdings: Holding) -> None:
        for holding in holdings:
            if holding.number in self._holdings:
                continue
            self._holdings[holding.number] = holding
            self._total += holding.amount

    def cost(self, currency: Currency) -> Money:
        return reduce(
            operator.add,
            (holding.acquisition_price for holding in self),
            currency.zero,
        )

    def validate(self) -> None:
        recomputed = sum(
            (holding.amount for holding in self._holdings.values()), Decimal("0")
        )
        if recomputed != self._total:
            raise ValidationError(self._total, recomputed)

    def __contains__(self, holding: object) -> bool:
        return (
            isinstance(holding, Holding)
            and self._holdings.get(holding.number) is holding
        )

    def __iter__(self) -> Iterator[Holding]:
        return iter(list(self._holdings.values()))

    def __len__(self) -> int:
        return len(self._holdings)

    def __str__(self) -> str:
        return str(self._total)
