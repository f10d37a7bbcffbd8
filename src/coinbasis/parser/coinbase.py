import json
import logging
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any, Final

from coinbasis.config import config
from coinbasis.exceptions import ParseError
from coinbasis.parser.factory import ParserFactory
from coinbasis.parser.types import ParsingResult
from coinbasis.rawtransaction import RawTransaction
from coinbasis.typing import WalletId

logger = logging.getLogger(__name__)

REQUIRED: Final = ("id", "type", "updated_at", "amount")


def page_records(file: Path, document: Any) -> Iterator[Mapping[str, Any]]:
    """Yield the transaction objects of an API page, a list of
    transaction objects or a single transaction object."""
    match document:
        case {"data": list(records)}:
            yield from records
        case list(records):
            yield from records
        case {"id": _}:
            yield document
        case _:
            raise ParseError(file, None, "Unrecognised document structure")


class CoinbaseParser:
    def __init__(self, file: Path) -> None:
        self._file = file

    def can_parse(self) -> bool:
        raise NotImplementedError

    def records(self) -> Iterator[Mapping[str, Any]]:
        raise NotImplementedError

    def parse(self) -> ParsingResult:
        transactions = []

        for record in self.records():
            if not isinstance(record, Mapping):
                raise ParseError(self._file, None, f"Invalid record '{record}'")

            if missing := [f for f in REQUIRED if f not in record]:
                raise ParseError(
                    self._file, record, f"Missing fields: {', '.join(missing)}"
                )

            try:
                transactions.append(RawTransaction.from_dict(record))
            except (KeyError, TypeError, ValueError) as ex:
                raise ParseError(self._file, record, str(ex)) from ex

        wallets = {tr.wallet for tr in transactions if tr.wallet is not None}
        if len(wallets) > 1:
            raise ParseError(
                self._file,
                None,
                f"Transactions of multiple wallets found: {', '.join(sorted(wallets))}",
            )

        wallet = WalletId(next(iter(wallets))) if wallets else None

        if config.sort_by_time:
            transactions.sort(key=lambda tr: tr.updated_at)

        return ParsingResult(transactions, wallet)


@ParserFactory.register("Coinbase JSON")
class CoinbaseJsonParser(CoinbaseParser):
    def can_parse(self) -> bool:
        if self._file.suffix.lower() != ".json":
            return False

        try:
            document = self._load()
        except ParseError:
            return False

        return isinstance(document, list) or (
            isinstance(document, dict) and isinstance(document.get("data"), list)
        )

    def records(self) -> Iterator[Mapping[str, Any]]:
        yield from page_records(self._file, self._load())

    def _load(self) -> Any:
        with self._file.open("rb") as file:
            try:
                return json.load(file)
            except (json.JSONDecodeError, UnicodeDecodeError) as ex:
                raise ParseError(self._file, None, f"Invalid JSON: {ex}") from ex


@ParserFactory.register("Coinbase JSON Lines")
class CoinbaseJsonLinesParser(CoinbaseParser):
    SUFFIXES: Final = (".jsonl", ".ndjson")

    def can_parse(self) -> bool:
        return self._file.suffix.lower() in self.SUFFIXES

    def records(self) -> Iterator[Mapping[str, Any]]:
        with self._file.open("rb") as file:
            for line_no, line in enumerate(file, start=1):
                if not line.strip():
                    continue

                try:
                    document = json.loads(line)
                except (json.JSONDecodeError, UnicodeDecodeError) as ex:
                    raise ParseError(
                        self._file, None, f"Invalid JSON on line {line_no}: {ex}"
                    ) from ex

                if isinstance(document, dict) and "pagination" in document:
                    logger.debug(
                        "Reading page %s of %s",
                        line_no,
                        self._file,
                    )

                yield from page_records(self._file, document)
