import csv
import json
from datetime import datetime, timezone
from decimal import Decimal

from moneyed import EUR, USD, Money

from coinbasis.prettytable import Field, Format, OutputFormat, PrettyTable


def make_table(rows) -> PrettyTable:
    table = PrettyTable(
        [
            Field("Date", Format.DATE),
            Field("Amount", Format.QUANTITY, show_sum=True),
            Field("Cost", Format.MONEY, show_sum=True),
        ]
    )
    for row in rows:
        table.add_row(row)
    return table


DATE = datetime(2020, 3, 1, 12, 0, tzinfo=timezone.utc)


def test_text_single_currency():
    table = make_table(
        [
            [DATE, Decimal("1.5"), Money("10", USD)],
            [DATE, Decimal("0.25"), Money("2.5", USD)],
        ]
    )

    out = table.to_string(OutputFormat.TEXT, leading_nl=False)
    assert "Cost (USD)" in out
    assert "2020-03-01" in out
    assert "1.75000000" in out
    assert "12.50" in out
    assert "12.50 USD" not in out


def test_text_multiple_currencies():
    table = make_table(
        [
            [DATE, Decimal("1"), Money("10", USD)],
            [DATE, Decimal("1"), Money("5", EUR)],
            [DATE, Decimal("1"), Money("2.5", USD)],
        ]
    )

    out = table.to_string(OutputFormat.TEXT)
    assert out.startswith("\n")
    assert "Cost (USD)" not in out
    assert "10.00 USD" in out
    assert "12.50 USD" in out
    assert "5.00 EUR" in out


def test_csv_export():
    table = make_table(
        [
            [DATE, Decimal("1"), Money("10", USD)],
            [DATE, Decimal("2"), ""],
        ]
    )

    out = table.to_string(OutputFormat.CSV, leading_nl=False)
    rows = list(csv.reader(out.splitlines()))
    assert rows[0] == ["Date", "Amount", "Cost", "Cost (Currency)"]
    assert rows[1] == ["2020-03-01T12:00:00+00:00", "1", "10", "USD"]
    assert rows[2] == ["2020-03-01T12:00:00+00:00", "2", "", ""]
    # No total row outside of text and html output.
    assert len(rows) == 3


def test_json_export():
    table = make_table([[DATE, Decimal("1.5"), Money("10", EUR)]])

    (obj,) = json.loads(table.to_string(OutputFormat.JSON, leading_nl=False))
    assert obj == {
        "Date": "2020-03-01T12:00:00+00:00",
        "Amount": "1.5",
        "Cost": "10",
        "Cost (Currency)": "EUR",
    }


def test_html_export():
    table = make_table([[DATE, Decimal("1.5"), Money("10", EUR)]])

    out = table.to_string(OutputFormat.HTML, leading_nl=False)
    assert out.startswith("<table>")
    assert "Cost (EUR)" in out
    assert "10.00" in out


def test_empty_table():
    assert not make_table([])
    assert make_table([[DATE, Decimal("1"), Money("1", USD)]])
