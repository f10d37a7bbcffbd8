import csv
import io
import json
import math
from collections import defaultdict
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from functools import cache
from typing import Any

import prettytable
from moneyed import Currency, Money

from coinbasis.utils import boldify


class OutputFormat(str, Enum):
    TEXT = "text"
    CSV = "csv"
    JSON = "json"
    HTML = "html"


class Format(Enum):
    DATE = 1
    DAYS = 2
    RATE = 3
    QUANTITY = 4
    MONEY = 5


def date_format(format: str) -> Callable[[str, Any], str]:
    def _date_format(_field, val) -> str:
        if isinstance(val, (date, datetime)):
            return val.strftime(format)
        return val

    return _date_format


def decimal_format(precision: int) -> Callable[[str, Any], str]:
    def _decimal_format(_field, val) -> str:
        if isinstance(val, Decimal):
            return f"{val:.{precision}f}"
        elif isinstance(val, str):
            return val
        else:
            return ""

    return _decimal_format


def money_format(show_currency: bool) -> Callable[[str, Any], str]:
    def _money_format(_field, val) -> str:
        if isinstance(val, Money):
            precision = currency_precision(val.currency)
            amount = f"{val.amount:.{precision}f}"
            return f"{amount} {val.currency}" if show_currency else amount
        elif isinstance(val, str):
            return val
        else:
            return ""

    return _money_format


@cache
def currency_precision(currency: Currency) -> int:
    if not currency.sub_unit:
        return 2
    return int(math.log10(currency.sub_unit))


@dataclass
class Field:
    name: str
    format: Format | None = None
    show_sum: bool = False


class PrettyTable(prettytable.PrettyTable):
    """A header-ruled table of typed fields.

    Money cells are rendered with the precision of their currency, and the
    currency code is moved to the header when a column holds one currency
    only. CSV and JSON exports carry raw values, with a separate currency
    column for each money field.
    """

    def __init__(self, fields: Sequence[Field], **kwargs) -> None:
        super().__init__([field.name for field in fields], **kwargs)

        self.hrules = prettytable.HEADER
        self.vrules = prettytable.NONE

        self.__fields = fields

    def __bool__(self) -> bool:
        return len(self.rows) > 0

    def to_string(
        self, format: OutputFormat = OutputFormat.TEXT, leading_nl: bool = True
    ) -> str:
        start_nl = "\n" if leading_nl else ""

        match format:
            case OutputFormat.CSV:
                return f"{start_nl}{self._to_csv()}"
            case OutputFormat.JSON:
                return f"{start_nl}{self._to_json()}"

        self._set_fields_names(bold_text=format == OutputFormat.TEXT)
        self._set_fields_format()

        if self.rows and any(field.show_sum for field in self.__fields):
            self._add_total_row()

        if format == OutputFormat.HTML:
            return f"{start_nl}{self.get_html_string()}"

        return f"{start_nl}{self.get_string()}\n"

    def _to_csv(self) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(self._export_names())
        writer.writerows(self._export_row(row) for row in self.rows)
        return buffer.getvalue().rstrip()

    def _to_json(self) -> str:
        names = self._export_names()
        objects = [dict(zip(names, self._export_row(row))) for row in self.rows]
        return json.dumps(objects, indent=4, sort_keys=True, default=str)

    def _export_names(self) -> list[str]:
        names = []
        for field in self.__fields:
            names.append(field.name)
            if field.format == Format.MONEY:
                names.append(f"{field.name} (Currency)")
        return names

    def _export_row(self, row: Sequence[Any]) -> list[Any]:
        out_row: list[Any] = []

        for field, val in zip(self.__fields, row, strict=True):
            match val:
                case Money() if field.format == Format.MONEY:
                    out_row += [val.amount, val.currency.code]
                case _ if field.format == Format.MONEY:
                    out_row += [val, None]
                case datetime():
                    out_row.append(val.isoformat())
                case _:
                    out_row.append(val)

        return out_row

    def _set_fields_names(self, bold_text: bool) -> None:
        for field in self.__fields:
            if field.format == Format.MONEY:
                currencies = self._get_currencies(field.name)
                if len(currencies) == 1:
                    field.name += f" ({next(iter(currencies)).code})"

            if bold_text:
                field.name = boldify(field.name)

        self.field_names = [field.name for field in self.__fields]

    def _set_fields_format(self) -> None:
        for field in self.__fields:
            match field.format:
                case Format.DATE:
                    self.custom_format[field.name] = date_format("%Y-%m-%d")
                case Format.DAYS:
                    self.custom_format[field.name] = decimal_format(1)
                case Format.RATE:
                    self.custom_format[field.name] = decimal_format(6)
                case Format.QUANTITY:
                    self.custom_format[field.name] = decimal_format(8)
                case Format.MONEY:
                    self.custom_format[field.name] = money_format(
                        show_currency=self._is_multicurrency(field.name)
                    )

            numeric = field.format not in (None, Format.DATE)
            self.align[field.name] = "r" if numeric else "l"

    def _add_total_row(self) -> None:
        self.add_row(
            [
                self._sum_field(field) if field.show_sum else ""
                for field in self.__fields
            ]
        )

    def _sum_field(self, field: Field) -> str:
        values = self._column(field.name)

        if field.format == Format.MONEY:
            totals: dict[Currency, Decimal] = defaultdict(Decimal)
            for val in values:
                if isinstance(val, Money):
                    totals[val.currency] += val.amount

            show_currency = len(totals) > 1
            return "\n".join(
                money_format(show_currency)("", Money(total, currency))
                for currency, total in totals.items()
            )

        precision = 8 if field.format == Format.QUANTITY else 2
        total = sum((val for val in values if isinstance(val, Decimal)), Decimal("0"))

        return f"{total:.{precision}f}"

    def _column(self, field_name: str) -> list[Any]:
        idx = next(
            idx for idx, field in enumerate(self.__fields) if field.name == field_name
        )
        return [row[idx] for row in self.rows]

    def _get_currencies(self, field_name: str) -> set[Currency]:
        values = self._column(field_name)
        return {val.currency for val in values if isinstance(val, Money)}

    def _is_multicurrency(self, field_name: str) -> bool:
        return len(self._get_currencies(field_name)) > 1
