import logging
import operator
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from functools import reduce

from moneyed import Money

from coinbasis.config import config
from coinbasis.ledger import CapitalGain, Ledger
from coinbasis.prettytable import Field, Format, OutputFormat, PrettyTable
from coinbasis.utils import boldify, multifilter

logger = logging.getLogger(__name__)


def money(amounts: Sequence[Money]) -> str:
    if not amounts:
        return "0.00"
    total = reduce(operator.add, amounts)
    return f"{total.amount:.2f} {total.currency}"


@dataclass
class TermSummary:
    num_disposals: int = 0
    amount: Decimal = Decimal("0")
    costs: list[Money] = field(default_factory=list)
    proceeds: list[Money] = field(default_factory=list)
    gains: list[Money] = field(default_factory=list)
    losses: list[Money] = field(default_factory=list)

    def add(self, cg: CapitalGain) -> None:
        self.num_disposals += 1
        self.amount += cg.amount
        self.costs.append(cg.cost)
        self.proceeds.append(cg.proceeds)
        if cg.gain.amount >= 0:
            self.gains.append(cg.gain)
        else:
            self.losses.append(-cg.gain)

    def __str__(self) -> str:
        return (
            f"{'Number of disposals:':30}{self.num_disposals:>20}\n"
            f"{'Amount disposed:':30}{self.amount:>20.8f}\n"
            f"{'Disposal proceeds:':30}{money(self.proceeds):>20}\n"
            f"{'Allowable costs:':30}{money(self.costs):>20}\n"
            f"{'Gains:':30}{money(self.gains):>20}\n"
            f"{'Losses:':30}{money(self.losses):>20}\n"
        )


class OutputGenerator:
    def __init__(self, ledger: Ledger) -> None:
        self._ledger = ledger

    def show_transactions(
        self, format: OutputFormat, filters: Sequence[Callable] | None = None
    ) -> None:
        if table := self._create_transactions_table(filters):
            print(table.to_string(format, leading_nl=config.logging_enabled))

    def show_capital_gains(
        self, format: OutputFormat, filters: Sequence[Callable] | None = None
    ) -> None:
        capital_gains = list(multifilter(filters, self._ledger.capital_gains()))

        if not capital_gains:
            return

        table = self._create_capital_gains_table(capital_gains)

        if format != OutputFormat.TEXT:
            print(table.to_string(format, leading_nl=False))
            return

        print(table.to_string(format, leading_nl=config.logging_enabled))

        short_term = TermSummary()
        long_term = TermSummary()
        for cg in capital_gains:
            (long_term if cg.is_long_term else short_term).add(cg)

        for title, summary in (("Short-term", short_term), ("Long-term", long_term)):
            if summary.num_disposals:
                print(boldify(title))
                print(summary)

    def show_holdings(self, format: OutputFormat) -> None:
        if table := self._create_holdings_table():
            print(table.to_string(format, leading_nl=config.logging_enabled))

    def _create_transactions_table(
        self, filters: Sequence[Callable] | None = None
    ) -> PrettyTable:
        table = PrettyTable(
            [
                Field("Date", Format.DATE),
                Field("Transaction ID"),
                Field("Direction"),
                Field("Kind"),
                Field("Amount", Format.QUANTITY),
                Field("Rate", Format.RATE),
                Field("Value", Format.MONEY),
                Field("Balance", Format.QUANTITY),
                Field("Cost Basis", Format.MONEY),
                Field("Acquired", Format.QUANTITY),
                Field("Held", Format.QUANTITY),
                Field("Divested", Format.QUANTITY),
            ]
        )

        for tx in multifilter(filters, self._ledger):
            table.add_row(
                [
                    tx.time.astimezone(config.timezone),
                    tx.id,
                    tx.direction.value,
                    tx.kind.value,
                    tx.amount,
                    tx.exchange_rate,
                    tx.exchange_amount,
                    tx.balance,
                    tx.cost_basis,
                    tx.acquired.amount,
                    tx.held.amount,
                    tx.divested.amount,
                ]
            )

        return table

    def _create_capital_gains_table(
        self, capital_gains: Sequence[CapitalGain]
    ) -> PrettyTable:
        table = PrettyTable(
            [
                Field("Disposal Date", Format.DATE),
                Field("Acquisition Date", Format.DATE),
                Field("Transaction ID"),
                Field("Term"),
                Field("Amount", Format.QUANTITY, show_sum=True),
                Field("Days Held", Format.DAYS),
                Field("Cost", Format.MONEY, show_sum=True),
                Field("Proceeds", Format.MONEY, show_sum=True),
                Field("Gain/Loss", Format.MONEY, show_sum=True),
            ]
        )

        last_idx = len(capital_gains) - 1

        for idx, cg in enumerate(capital_gains):
            divider = idx == last_idx or cg.year != capital_gains[idx + 1].year

            table.add_row(
                [
                    cg.transaction.time.astimezone(config.timezone),
                    cg.holding.acquisition_time.astimezone(config.timezone),
                    cg.transaction.id,
                    cg.term,
                    cg.amount,
                    cg.days_held,
                    cg.cost,
                    cg.proceeds,
                    cg.gain,
                ],
                divider=divider,
            )

        return table

    def _create_holdings_table(self) -> PrettyTable:
        table = PrettyTable(
            [
                Field("Acquisition Date", Format.DATE),
                Field("Holding"),
                Field("Amount", Format.QUANTITY, show_sum=True),
                Field("Rate", Format.RATE),
                Field("Cost", Format.MONEY, show_sum=True),
            ]
        )

        holdings = sorted(self._ledger.holdings(), key=lambda h: h.acquisition_time)

        for holding in holdings:
            table.add_row(
                [
                    holding.acquisition_time.astimezone(config.timezone),
                    holding.number,
                    holding.amount,
                    holding.acquisition_rate,
                    holding.acquisition_price,
                ]
            )

        return table
