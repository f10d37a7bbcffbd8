from pathlib import Path
from typing import NamedTuple, Protocol

from coinbasis.rawtransaction import RawTransaction
from coinbasis.typing import WalletId


class ParsingResult(NamedTuple):
    transactions: list[RawTransaction]
    wallet: WalletId | None


class Parser(Protocol):
    def __init__(self, file: Path) -> None:
        pass

    def can_parse(self) -> bool:
        pass

    def parse(self) -> ParsingResult:
        pass
