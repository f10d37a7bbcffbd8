import importlib.metadata
import logging
import operator
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Annotated, Optional

import click
import typer
from dateutil import tz
from moneyed import get_currency
from moneyed.classes import CurrencyDoesNotExist

from coinbasis.config import config
from coinbasis.exceptions import CoinbasisError
from coinbasis.ledger import CapitalGain, Ledger
from coinbasis.logging import configure_logger
from coinbasis.output import OutputGenerator
from coinbasis.parser import ParserFactory
from coinbasis.prettytable import OutputFormat
from coinbasis.transaction import Transaction
from coinbasis.typing import Direction

logger = logging.getLogger(__name__)


class OrderedCommands(typer.core.TyperGroup):
    def list_commands(self, ctx: click.Context) -> list[str]:
        return list(self.commands.keys())


class MutuallyExclusiveOption(click.exceptions.UsageError):
    def __init__(self, opt1: str, opt2: str) -> None:
        super().__init__(f"Option {opt1} cannot be used together with option {opt2}")


app = typer.Typer(
    cls=OrderedCommands,
    context_settings={"help_option_names": ["-h", "--help"]},
    no_args_is_help=True,
    pretty_exceptions_enable=False,
)

FileArg = Annotated[
    Path,
    typer.Argument(
        exists=True,
        dir_okay=False,
        help="JSON or JSON Lines export of the wallet transactions.",
        show_default=False,
    ),
]

YearOpt = Annotated[
    Optional[int],
    typer.Option(
        min=2009,
        metavar="YEAR",
        help="Filter by calendar year.",
        show_default=False,
    ),
]

OutputFormatOpt = Annotated[
    OutputFormat,
    typer.Option("--output", "-o", help="Output format."),
]


def abort(msg: CoinbasisError | str) -> None:
    logger.critical(str(msg))
    raise typer.Exit(code=1)


def build_ledger(path: Path) -> Ledger:
    parser, parser_name = ParserFactory.create_parser(path)
    if parser is None:
        abort(f"Unable to find a parser for '{path}'")

    logger.info("Parsing '%s' with %s parser", path, parser_name)

    try:
        result = parser.parse()
        logger.info("Parsed %s transactions", len(result.transactions))

        ledger = Ledger(result.wallet)
        ledger.extend(result.transactions)
    except CoinbasisError as ex:
        abort(ex)

    logger.info(
        "Processed %s transactions, final balance %s", len(ledger), ledger.balance
    )

    return ledger


def create_filters(
    direction: Direction | None = None,
    long_term: bool | None = None,
    gain_op: Callable | None = None,
) -> Sequence[Callable]:
    filters: list[Callable] = []

    if direction is not None:
        filters.append(lambda tx: tx.direction == direction)

    if long_term is not None:
        filters.append(lambda cg: cg.is_long_term == long_term)

    if gain_op is not None:
        filters.append(lambda cg: gain_op(cg.gain.amount, 0))

    return filters


def version_callback(value: bool) -> None:
    if value:
        print(f"{__package__} {importlib.metadata.version(__package__)}")
        raise typer.Exit()


def timezone_callback(value: str | None) -> str | None:
    if value is not None and tz.gettz(value) is None:
        raise typer.BadParameter(f"Unknown time zone '{value}'")
    return value


def currency_callback(value: str) -> str:
    try:
        get_currency(value.upper())
    except CurrencyDoesNotExist as ex:
        raise typer.BadParameter(f"Unknown currency '{value}'") from ex
    return value.upper()


@app.callback()
def main_callback(
    timezone: Annotated[
        Optional[str],
        typer.Option(
            callback=timezone_callback,
            help="Time zone used for the long-term cutoff and to show dates "
            "(defaults to the local time zone).",
            show_default=False,
        ),
    ] = None,
    currency: Annotated[
        str,
        typer.Option(
            callback=currency_callback,
            help="Native currency of a wallet whose first record has no native amount.",
        ),
    ] = config.native_currency,
    sort: Annotated[
        bool,
        typer.Option(help="Sort the transactions by time before processing them."),
    ] = config.sort_by_time,
    verbose: Annotated[
        bool, typer.Option("--verbose", help="Enable additional logging.")
    ] = False,
    quiet: Annotated[
        bool, typer.Option("--quiet", help="Disable all non-critical logging.")
    ] = False,
    colour: Annotated[
        bool, typer.Option(help="Show coloured output.")
    ] = config.use_colour,
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            callback=version_callback,
            help="Show version information and exit.",
        ),
    ] = None,
) -> None:
    if verbose and quiet:
        raise MutuallyExclusiveOption("--verbose", "--quiet")

    if timezone is not None:
        config.timezone = tz.gettz(timezone)

    config.native_currency = currency
    config.sort_by_time = sort

    if quiet:
        config.log_level = logging.CRITICAL

    if verbose:
        config.log_level = logging.DEBUG

    config.use_colour = colour

    configure_logger()


@app.command("transactions")
def transactions_command(
    file: FileArg,
    year: YearOpt = None,
    incoming_only: Annotated[
        bool, typer.Option("--incoming", help="Show only incoming transactions.")
    ] = False,
    outgoing_only: Annotated[
        bool, typer.Option("--outgoing", help="Show only outgoing transactions.")
    ] = False,
    format: OutputFormatOpt = OutputFormat.TEXT,
) -> None:
    """
    Show the transactions and the running balance.
    """
    if incoming_only and outgoing_only:
        raise MutuallyExclusiveOption("--incoming", "--outgoing")

    direction: Direction | None = None
    if incoming_only:
        direction = Direction.IN
    elif outgoing_only:
        direction = Direction.OUT

    filters: list[Callable[[Transaction], bool]] = []
    if year is not None:
        filters.append(lambda tx: tx.time.astimezone(config.timezone).year == year)
    filters += create_filters(direction=direction)

    outputter = OutputGenerator(build_ledger(file))
    outputter.show_transactions(format, filters)


@app.command("capital-gains")
def capital_gains_command(
    file: FileArg,
    year: YearOpt = None,
    gains_only: Annotated[
        bool, typer.Option("--gains", help="Show only capital gains.")
    ] = False,
    losses_only: Annotated[
        bool, typer.Option("--losses", help="Show only capital losses.")
    ] = False,
    long_term_only: Annotated[
        bool, typer.Option("--long-term", help="Show only long-term disposals.")
    ] = False,
    short_term_only: Annotated[
        bool, typer.Option("--short-term", help="Show only short-term disposals.")
    ] = False,
    format: OutputFormatOpt = OutputFormat.TEXT,
) -> None:
    """
    Show the capital gains realised by each divested lot.
    """
    if gains_only and losses_only:
        raise MutuallyExclusiveOption("--gains", "--losses")

    if long_term_only and short_term_only:
        raise MutuallyExclusiveOption("--long-term", "--short-term")

    long_term: bool | None = None
    if long_term_only:
        long_term = True
    elif short_term_only:
        long_term = False

    gain_op: Callable | None = None
    if gains_only:
        gain_op = operator.ge
    elif losses_only:
        gain_op = operator.lt

    filters: list[Callable[[CapitalGain], bool]] = []
    if year is not None:
        filters.append(lambda cg: cg.year == year)
    filters += create_filters(long_term=long_term, gain_op=gain_op)

    outputter = OutputGenerator(build_ledger(file))
    outputter.show_capital_gains(format, filters)


@app.command("holdings")
def holdings_command(
    file: FileArg,
    format: OutputFormatOpt = OutputFormat.TEXT,
) -> None:
    """
    Show the lots held after the last transaction.
    """
    outputter = OutputGenerator(build_ledger(file))
    outputter.show_holdings(format)


def main() -> None:
    app()
