from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from coinbasis.holding import Holding
    from coinbasis.rawtransaction import RawTransaction
    from coinbasis.transaction import Transaction


class CoinbasisError(Exception):
    def __init__(
        self,
        message: str,
        *,
        record: RawTransaction | None = None,
        prev: Transaction | None = None,
    ) -> None:
        super().__init__(message)
        self.record = record
        self.prev = prev


class MalformedTransferError(CoinbasisError):
    def __init__(self, record: RawTransaction, reason: str) -> None:
        super().__init__(
            f"Transaction {record.id}: transfer has {reason}", record=record
        )


class MalformedTradeError(CoinbasisError):
    def __init__(self, record: RawTransaction) -> None:
        super().__init__(
            f"Transaction {record.id}: trade has no 'native_amount'", record=record
        )


class UnsupportedTransactionTypeError(CoinbasisError):
    def __init__(self, record: RawTransaction) -> None:
        super().__init__(
            f"Transaction {record.id}: unsupported type of transaction "
            f"'{record.type}'",
            record=record,
        )


class NoPriorBalanceError(CoinbasisError):
    def __init__(self, record: RawTransaction) -> None:
        super().__init__(
            f"Transaction {record.id}: outgoing transaction must be preceded "
            f"by an incoming transaction",
            record=record,
        )


class AlreadyResolvedError(CoinbasisError):
    def __init__(self, holding: Holding) -> None:
        super().__init__(
            f"Holding {holding.number} can only be divested or split once"
        )
        self.holding = holding


class InvalidSplitError(CoinbasisError):
    def __init__(self, holding: Holding, amount: Decimal) -> None:
        super().__init__(
            f"Holding {holding.number} of {holding.amount} cannot be split "
            f"to cover {amount}"
        )
        self.holding = holding


class InsufficientLotsError(CoinbasisError):
    def __init__(
        self,
        record: RawTransaction,
        prev: Transaction | None,
        uncovered: Decimal,
    ) -> None:
        super().__init__(
            f"Transaction {record.id}: available lots leave {uncovered} "
            f"of {abs(record.amount)} uncovered",
            record=record,
            prev=prev,
        )
        self.uncovered = uncovered


class ValidationError(CoinbasisError):
    def __init__(self, total: Decimal, recomputed: Decimal) -> None:
        super().__init__(f"Validation failed: incorrect total, {total} ≠ {recomputed}")


class BalanceMismatchError(CoinbasisError):
    def __init__(
        self,
        record: RawTransaction,
        prev: Transaction | None,
        balance: Decimal,
        holdings_amount: Decimal,
    ) -> None:
        super().__init__(
            f"Transaction {record.id}: balance mismatch: "
            f"{balance} ≠ {holdings_amount}",
            record=record,
            prev=prev,
        )


class ParseError(CoinbasisError):
    def __init__(
        self, file: Path, record: Mapping[str, Any] | None, message: str
    ) -> None:
        where = f" on record {dict(record)}" if record is not None else ""
        super().__init__(f"{file}: {message}{where}")
