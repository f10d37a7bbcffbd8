from enum import Enum
from typing import NewType

TransactionId = NewType("TransactionId", str)

WalletId = NewType("WalletId", str)


class Direction(str, Enum):
    IN = "IN"
    OUT = "OUT"


class Kind(str, Enum):
    TRANSFER = "TRANSFER"
    TRADE = "TRADE"
    # Spending currency on goods or services. Not produced by the
    # classifier yet.
    USE = "USE"
