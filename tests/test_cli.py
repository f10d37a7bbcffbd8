import csv
import importlib.metadata
import json
import os
import re
from collections.abc import Callable, Sequence
from decimal import Decimal
from pathlib import Path

import pytest
from typer.testing import CliRunner, Result

from coinbasis.cli import app

PROJECT_DIR = Path(__file__).parent.parent
DATA_FILE = str(PROJECT_DIR / "data" / "coinbase_transactions.json")
EX_OK = getattr(os, "EX_OK", 0)

BUY1 = "57ffb4ae-0c59-5430-bcd3-3f98f797a66c"
RECEIVE = "3c04e35e-8e5a-5ff1-9155-00675db4ac02"
SELL = "4117f7d6-5694-5b36-bc8f-847509850ea4"
SEND = "8250fe29-f5e5-58c1-afb9-8ac2cbb6ff57"
BUY2 = "a1b2c3d4-0000-5a5a-8888-2d1f0c6b7e11"
DEPOSIT = "e7c1a3f0-7d22-5b9e-a1c4-93d5e2f4b6a8"


@pytest.fixture
def execute() -> Callable:
    def _wrapper(
        args: Sequence[str],
        quiet: bool = True,
        verbose: bool = False,
    ) -> Result:
        opts = []

        if quiet:
            opts.append("--quiet")

        if verbose:
            opts.append("--verbose")

        runner = CliRunner()
        return runner.invoke(app, [*opts, *args])

    return _wrapper


def test_transactions_command(execute):
    result = execute(["transactions", DATA_FILE])
    assert result.exit_code == EX_OK
    for tr_id in (BUY1, RECEIVE, SELL, SEND, BUY2, DEPOSIT):
        assert tr_id in result.stdout


def test_transactions_command_incoming(execute):
    result = execute(["transactions", "--incoming", DATA_FILE])
    assert result.exit_code == EX_OK
    for tr_id in (BUY1, RECEIVE, BUY2):
        assert tr_id in result.stdout
    for tr_id in (SELL, SEND, DEPOSIT):
        assert tr_id not in result.stdout


def test_transactions_command_year(execute):
    result = execute(["transactions", "--year", "2019", "--output", "csv", DATA_FILE])
    assert result.exit_code == EX_OK

    rows = list(csv.DictReader(result.stdout.splitlines()))
    assert [row["Transaction ID"] for row in rows] == [BUY1, RECEIVE]
    assert [Decimal(row["Balance"]) for row in rows] == [
        Decimal("1"),
        Decimal("1.5"),
    ]


def test_capital_gains_command(execute):
    result = execute(["capital-gains", DATA_FILE])
    assert result.exit_code == EX_OK
    assert "Short-term" in result.stdout
    assert "Long-term" in result.stdout
    assert SELL in result.stdout


def test_capital_gains_command_csv(execute):
    result = execute(["capital-gains", "--output", "csv", DATA_FILE])
    assert result.exit_code == EX_OK

    rows = list(csv.DictReader(result.stdout.splitlines()))
    assert [row["Transaction ID"] for row in rows] == [SELL, SELL, SEND, DEPOSIT]
    assert [row["Term"] for row in rows] == ["Short", "Long", "Long", "Short"]

    total = sum(Decimal(row["Gain/Loss"]) for row in rows)
    assert total.quantize(Decimal("0.01")) == Decimal("5280.00")


def test_capital_gains_command_long_term(execute):
    result = execute(["capital-gains", "--long-term", "--output", "json", DATA_FILE])
    assert result.exit_code == EX_OK

    data = json.loads(result.stdout)
    assert [obj["Transaction ID"] for obj in data] == [SELL, SEND]
    assert Decimal(data[1]["Gain/Loss"]) == Decimal("0")


def test_capital_gains_command_no_results(execute):
    result = execute(["capital-gains", "--losses", DATA_FILE])
    assert result.exit_code == EX_OK
    assert not result.stdout


def test_holdings_command(execute):
    result = execute(["holdings", "--output", "csv", DATA_FILE])
    assert result.exit_code == EX_OK

    (row,) = list(csv.DictReader(result.stdout.splitlines()))
    assert Decimal(row["Amount"]) == Decimal("0.5")
    assert Decimal(row["Cost"]) == Decimal("1800")
    assert row["Cost (Currency)"] == "USD"


def test_timezone_option(execute):
    result = execute(["--timezone", "Asia/Tokyo", "transactions", DATA_FILE])
    assert result.exit_code == EX_OK


def test_invalid_timezone(execute):
    result = execute(["--timezone", "Nowhere/Special", "transactions", DATA_FILE])
    assert "Unknown time zone" in result.output
    assert result.exit_code != EX_OK


def test_invalid_currency(execute):
    result = execute(["--currency", "QQQ", "transactions", DATA_FILE])
    assert "Unknown currency" in result.output
    assert result.exit_code != EX_OK


def test_quiet_and_verbose_options_are_mutually_exclusive(execute):
    result = execute(["--quiet", "--verbose", "transactions", DATA_FILE], quiet=False)
    assert "Usage:" in result.output
    assert result.exit_code != EX_OK


def test_incoming_and_outgoing_options_are_mutually_exclusive(execute):
    result = execute(["transactions", "--incoming", "--outgoing", DATA_FILE])
    assert "Usage:" in result.output
    assert result.exit_code != EX_OK


def test_gains_and_losses_options_are_mutually_exclusive(execute):
    result = execute(["capital-gains", "--gains", "--losses", DATA_FILE])
    assert "Usage:" in result.output
    assert result.exit_code != EX_OK


def test_long_term_and_short_term_options_are_mutually_exclusive(execute):
    result = execute(["capital-gains", "--long-term", "--short-term", DATA_FILE])
    assert "Usage:" in result.output
    assert result.exit_code != EX_OK


def test_invocation_without_any_argument(execute):
    result = execute([], quiet=False)
    assert "Options" in result.output
    assert "Commands" in result.output
    assert re.search(
        r"transactions.*capital-gains.*holdings", result.output, re.DOTALL
    )


def test_version_option(execute):
    result = execute(["--version"])
    version = importlib.metadata.version("coinbasis")
    assert result.stdout.strip() == f"coinbasis {version}"
    assert result.exit_code == EX_OK


def test_verbose_option(execute):
    result = execute(["transactions", DATA_FILE], quiet=False, verbose=True)
    assert "DEBUG" in result.output
    assert result.exit_code == EX_OK


def test_parser_not_found_error(execute, tmp_path):
    csv_file = tmp_path / "transactions.csv"
    csv_file.write_text("Timestamp,Type\n", encoding="utf-8")

    result = execute(["transactions", str(csv_file)])
    assert "Unable to find a parser for" in result.output
    assert result.exit_code != EX_OK


def test_unsupported_transaction_error(execute, tmp_path):
    data = json.loads(Path(DATA_FILE).read_text(encoding="utf-8"))
    data["data"][1]["type"] = "fiat_deposit"
    json_file = tmp_path / "transactions.json"
    json_file.write_text(json.dumps(data), encoding="utf-8")

    result = execute(["holdings", str(json_file)])
    assert "unsupported type of transaction 'fiat_deposit'" in result.output
    assert result.exit_code != EX_OK


def test_insufficient_lots_error(execute, tmp_path):
    data = json.loads(Path(DATA_FILE).read_text(encoding="utf-8"))
    data["data"][2]["amount"]["amount"] = "-2.00000000"
    json_file = tmp_path / "transactions.json"
    json_file.write_text(json.dumps(data), encoding="utf-8")

    result = execute(["capital-gains", str(json_file)])
    assert "uncovered" in result.output
    assert result.exit_code != EX_OK


def test_file_not_utf8_error(execute, tmp_path):
    json_file = tmp_path / "transactions.json"
    json_file.write_bytes(b'[{"id": "\xff"}]')

    result = execute(["transactions", str(json_file)])
    assert "Unable to find a parser for" in result.output
    assert result.exit_code == 1
