import logging
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from decimal import Decimal

from moneyed import Money

from coinbasis.config import config
from coinbasis.const import SECONDS_PER_DAY
from coinbasis.exceptions import CoinbasisError
from coinbasis.holding import Holding
from coinbasis.rawtransaction import RawTransaction
from coinbasis.transaction import Transaction
from coinbasis.typing import WalletId

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CapitalGain:
    holding: Holding
    transaction: Transaction

    @property
    def is_long_term(self) -> bool:
        assert self.transaction.long_term_cutoff is not None
        return self.holding.is_long_term(self.transaction.long_term_cutoff)

    @property
    def term(self) -> str:
        return "Long" if self.is_long_term else "Short"

    @property
    def amount(self) -> Decimal:
        return self.holding.amount

    @property
    def cost(self) -> Money:
        return self.holding.acquisition_price

    @property
    def proceeds(self) -> Money:
        price = self.holding.divestment_price
        assert price is not None
        return price

    @property
    def gain(self) -> Money:
        return self.proceeds - self.cost

    @property
    def days_held(self) -> Decimal:
        duration = self.holding.duration
        assert duration is not None
        return Decimal(duration.total_seconds()) / Decimal(SECONDS_PER_DAY)

    @property
    def year(self) -> int:
        return self.transaction.time.astimezone(config.timezone).year

    def __str__(self) -> str:
        return f"{self.term}-term: {self.holding}"


class Ledger:
    """The ordered history of transactions of a single wallet."""

    def __init__(self, wallet: WalletId | None = None) -> None:
        self._wallet = wallet
        self._transactions: list[Transaction] = []

    @property
    def wallet(self) -> WalletId | None:
        return self._wallet

    @property
    def last(self) -> Transaction | None:
        return self._transactions[-1] if self._transactions else None

    @property
    def balance(self) -> Decimal:
        return self.last.balance if self.last is not None else Decimal("0")

    @property
    def transactions(self) -> Sequence[Transaction]:
        return tuple(self._transactions)

    def add(self, raw: RawTransaction) -> Transaction:
        try:
            tx = Transaction(raw, self.last)
        except CoinbasisError as ex:
            if ex.record is None:
                ex.record = raw
            if ex.prev is None:
                ex.prev = self.last
            logger.error("Last transaction: %s", self.last)
            logger.error("New transaction: %s", raw)
            raise

        self._transactions.append(tx)
        return tx

    def extend(self, raws: Iterable[RawTransaction]) -> None:
        for raw in raws:
            self.add(raw)

    def holdings(self) -> Sequence[Holding]:
        return self.last.open_holdings if self.last is not None else ()

    def capital_gains(self) -> Sequence[CapitalGain]:
        return [
            CapitalGain(holding, tx)
            for tx in self._transactions
            for holding in tx.divested
        ]

    def __iter__(self) -> Iterator[Transaction]:
        return iter(self._transactions)

    def __len__(self) -> int:
        return len(self._transactions)
