from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from moneyed import Currency, Money, get_currency

from coinbasis.config import config
from coinbasis.const import BALANCE_TOLERANCE
from coinbasis.exceptions import (
    BalanceMismatchError,
    InsufficientLotsError,
    MalformedTradeError,
    MalformedTransferError,
    NoPriorBalanceError,
    UnsupportedTransactionTypeError,
)
from coinbasis.holding import Holding, Holdings
from coinbasis.lotselector import select_lots
from coinbasis.rawtransaction import RawTransaction
from coinbasis.typing import Direction, Kind, TransactionId
from coinbasis.utils import format_timestamp, long_term_cutoff

logger = logging.getLogger(__name__)


def classify(raw: RawTransaction) -> tuple[Kind, Direction]:
    match raw.type:
        case "send":
            if raw.has_to and raw.has_from:
                raise MalformedTransferError(raw, "both 'from' and 'to' properties")
            if raw.has_to:
                return Kind.TRANSFER, Direction.OUT
            if raw.has_from:
                return Kind.TRANSFER, Direction.IN
            raise MalformedTransferError(raw, "neither 'from' nor 'to' properties")
        case "buy":
            return Kind.TRADE, Direction.IN
        case "sell":
            return Kind.TRADE, Direction.OUT
        case "exchange_deposit" | "pro_deposit":
            return Kind.TRANSFER, Direction.OUT
        case _:
            raise UnsupportedTransactionTypeError(raw)


def native_currency_code(raw: RawTransaction, prev: Transaction | None) -> str:
    """Records without a native amount are valued in the native currency of
    the wallet, as carried by the transaction preceding them."""
    if raw.native_currency:
        return raw.native_currency
    if prev is not None:
        return prev.native_currency.code
    return config.native_currency


class Transaction:
    """One account event folded on top of its predecessor.

    Construction classifies the raw record, updates the running balance
    and distributes the lots of the predecessor into the `acquired`,
    `held` and `divested` buckets. The buckets are reconciled against the
    balance before the constructor returns.
    """

    def __init__(self, raw: RawTransaction, prev: Transaction | None) -> None:
        self.id = TransactionId(raw.id)
        self.time: datetime = raw.updated_at
        self.amount: Decimal = abs(raw.amount)
        self.currency = raw.currency
        self.native_currency: Currency = get_currency(native_currency_code(raw, prev))
        self.prev = prev
        self.kind, self.direction = classify(raw)
        self.exchange_amount: Money = self.native_currency.zero
        self.exchange_rate = Decimal("0")
        self.long_term_cutoff: datetime | None = None
        self.acquired = Holdings()
        self.held = Holdings()
        self.divested = Holdings()

        match self.direction:
            case Direction.IN:
                prev_balance = prev.balance if prev is not None else Decimal("0")
                self.balance = prev_balance + self.amount
                self._acquire(raw, prev)
            case Direction.OUT:
                if prev is None:
                    raise NoPriorBalanceError(raw)
                self.balance = prev.balance - self.amount
                self._divest(raw, prev)
            case _:
                raise AssertionError(f"Unhandled direction: {self.direction}")

        self._log()
        self._reconcile(raw)

    @property
    def open_holdings(self) -> tuple[Holding, ...]:
        return (*self.acquired, *self.held)

    @property
    def cost_basis(self) -> Money:
        currency = self.native_currency
        return self.acquired.cost(currency) + self.held.cost(currency)

    @property
    def time_string(self) -> str:
        return format_timestamp(self.time)

    @property
    def is_delayed(self) -> bool:
        return self.prev is not None and self.time < self.prev.time

    def _trade_consideration(self, raw: RawTransaction) -> None:
        if raw.native_amount is None:
            raise MalformedTradeError(raw)
        self.exchange_amount = Money(abs(raw.native_amount), self.native_currency)
        self.exchange_rate = self._rate(self.exchange_amount)

    def _rate(self, exchange_amount: Money) -> Decimal:
        if self.amount == 0:
            return Decimal("0")
        return exchange_amount.amount / self.amount

    def _acquire(self, raw: RawTransaction, prev: Transaction | None) -> None:
        match self.kind:
            case Kind.TRANSFER:
                # The cost basis of funds received from elsewhere is not
                # known, so they are acquired at a zero rate.
                pass
            case Kind.TRADE:
                self._trade_consideration(raw)
            case _:
                raise AssertionError(f"Unhandled kind of transaction: {self.kind}")

        if prev is not None:
            self.held.add(*prev.open_holdings)
        self.acquired.add(Holding.acquire(self))

    def _divest(self, raw: RawTransaction, prev: Transaction) -> None:
        cutoff = long_term_cutoff(self.time)
        self.long_term_cutoff = cutoff

        match self.kind:
            case Kind.TRANSFER:
                pass
            case Kind.TRADE:
                self._trade_consideration(raw)
            case _:
                raise AssertionError(f"Unhandled kind of transaction: {self.kind}")

        selection = select_lots(prev.open_holdings, self.kind, self.amount, cutoff)
        if not selection.complete:
            raise InsufficientLotsError(raw, prev, selection.uncovered)

        if self.kind == Kind.TRANSFER:
            # Transfers out are disposed at cost.
            self.exchange_amount = selection.cost(self.native_currency)
            self.exchange_rate = self._rate(self.exchange_amount)

        for holding in selection.divested:
            self.divested.add(holding.divest(self))

        if selection.split is not None:
            cover, remainder = selection.split.split(selection.cover, self.time)
            self.held.add(remainder)
            self.divested.add(cover.divest(self))

        self.held.add(*selection.untouched)

    def _reconcile(self, raw: RawTransaction) -> None:
        self.acquired.validate()
        self.held.validate()

        holdings_amount = self.acquired.amount + self.held.amount
        if abs(self.balance - holdings_amount) > BALANCE_TOLERANCE:
            raise BalanceMismatchError(raw, self.prev, self.balance, holdings_amount)

    def _log(self) -> None:
        if self.is_delayed:
            logger.warning(
                "Transaction %s is older than the transaction preceding it", self.id
            )

        logger.info(
            "%s%s -- %s: %11.8f <= %3s/%-8s %11.8f @ %12.6f = %9.2f "
            "=> +++ %11.8f === %11.8f --- %11.8f",
            self.time_string,
            " ** DELAYED" if self.is_delayed else "",
            self.id,
            self.balance,
            self.direction.value,
            self.kind.value,
            self.amount,
            self.exchange_rate,
            self.exchange_amount.amount,
            self.acquired.amount,
            self.held.amount,
            self.divested.amount,
        )

        for holding in self.divested:
            logger.debug("Capital gains from %s", holding)

    def __str__(self) -> str:
        return (
            f"{self.time_string} {self.id}: {self.direction.value}/{self.kind.value} "
            f"{self.amount} {self.currency} @ {self.exchange_rate} "
            f"= {self.exchange_amount}, balance {self.balance}"
        )

    def __repr__(self) -> str:
        return (
            f"Transaction(id={self.id!r}, time={self.time.isoformat()}, "
            f"direction={self.direction.value}, kind={self.kind.value}, "
            f"amount={self.amount}, balance={self.balance})"
        )
