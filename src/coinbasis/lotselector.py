"""Selection of the lots that satisfy an outgoing transaction.

Candidate lots are ordered by the following rules, in priority order:

1. Short-term lots before long-term lots.
2. A lot whose amount exactly matches the amount to cover.
3. Acquisition rate: lower first for transfers, higher first for trades.
4. For trades only, lots large enough to cover the whole amount.
5. Smaller amount before larger amount.
6. Oldest first among long-term lots, newest first among short-term lots.

Lots are then consumed greedily down the sorted list. The first lot that
is larger than what remains to be covered is split.
"""

import operator
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from functools import cmp_to_key, reduce

from moneyed import Currency, Money

from coinbasis.holding import Holding
from coinbasis.typing import Kind


def cmp(a, b) -> int:
    return (a > b) - (a < b)


def lot_comparator(
    kind: Kind, amount: Decimal, cutoff: datetime
) -> Callable[[Holding, Holding], int]:
    match kind:
        case Kind.TRANSFER:
            rate_order = 1
            prefer_cover = False
        case Kind.TRADE:
            rate_order = -1
            prefer_cover = True
        case _:
            raise AssertionError(f"Unhandled kind of transaction: {kind}")

    def _compare(a: Holding, b: Holding) -> int:
        a_long = a.is_long_term(cutoff)
        b_long = b.is_long_term(cutoff)
        if a_long != b_long:
            return 1 if a_long else -1

        a_exact = a.amount == amount
        b_exact = b.amount == amount
        if a_exact != b_exact:
            return -1 if a_exact else 1

        if result := cmp(a.acquisition_rate, b.acquisition_rate):
            return result * rate_order

        if prefer_cover:
            a_covers = a.amount >= amount
            b_covers = b.amount >= amount
            if a_covers != b_covers:
                return -1 if a_covers else 1

        if result := cmp(a.amount, b.amount):
            return result

        if a_long:
            return cmp(a.acquisition_time, b.acquisition_time)
        return cmp(b.acquisition_time, a.acquisition_time)

    return _compare


def sort_lots(
    lots: Iterable[Holding], kind: Kind, amount: Decimal, cutoff: datetime
) -> list[Holding]:
    return sorted(lots, key=cmp_to_key(lot_comparator(kind, amount, cutoff)))


@dataclass
class LotSelection:
    divested: list[Holding] = field(default_factory=list)
    split: Holding | None = None
    cover: Decimal = Decimal("0")
    untouched: list[Holding] = field(default_factory=list)
    uncovered: Decimal = Decimal("0")

    @property
    def complete(self) -> bool:
        return self.uncovered <= 0

    def cost(self, currency: Currency) -> Money:
        """Acquisition cost of the consumed lots and of the split cover."""
        prices = [holding.acquisition_price for holding in self.divested]
        if self.split is not None and self.split.acquisition_rate != 0:
            prices.append(
                Money(self.cover * self.split.acquisition_rate, self.split.currency)
            )
        return reduce(operator.add, prices, currency.zero)


def select_lots(
    lots: Sequence[Holding], kind: Kind, amount: Decimal, cutoff: datetime
) -> LotSelection:
    selection = LotSelection()
    uncovered = amount
    remaining = sort_lots(lots, kind, amount, cutoff)

    while uncovered > 0 and remaining:
        holding = remaining.pop(0)
        if holding.amount <= uncovered:
            selection.divested.append(holding)
            uncovered -= holding.amount
        else:
            selection.split = holding
            selection.cover = uncovered
            uncovered = Decimal("0")

    selection.untouched = remaining
    selection.uncovered = uncovered

    return selection
