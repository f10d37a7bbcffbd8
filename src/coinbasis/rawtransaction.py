import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Final

from dateutil import tz
from dateutil.parser import parse as parse_timestamp

from coinbasis.typing import TransactionId, WalletId

WALLET_PATH_RE: Final = re.compile(r"^/v2/accounts/(?P<wallet>[^/]+)/")


def read_decimal(val: Any) -> Decimal:
    try:
        return Decimal(str(val).strip())
    except InvalidOperation as ex:
        raise ValueError(f"Invalid decimal value '{val}'") from ex


@dataclass(frozen=True)
class RawTransaction:
    """An account event as exported by the Coinbase v2 transactions API."""

    id: TransactionId
    updated_at: datetime
    amount: Decimal
    currency: str
    type: str
    has_to: bool = False
    has_from: bool = False
    native_amount: Decimal | None = None
    native_currency: str | None = None
    wallet: WalletId | None = None
    details: Mapping[str, Any] = field(
        default_factory=dict, compare=False, repr=False
    )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RawTransaction":
        updated_at = parse_timestamp(data["updated_at"])
        if updated_at.tzinfo is None:
            updated_at = updated_at.replace(tzinfo=tz.UTC)

        amount = data["amount"]

        native_amount = None
        native_currency = None
        if native := data.get("native_amount"):
            native_amount = read_decimal(native["amount"])
            native_currency = native.get("currency") or None

        wallet = None
        if match := WALLET_PATH_RE.match(data.get("resource_path") or ""):
            wallet = WalletId(match.group("wallet"))

        return cls(
            id=TransactionId(str(data["id"])),
            updated_at=updated_at,
            amount=read_decimal(amount["amount"]),
            currency=amount.get("currency", ""),
            type=str(data["type"]),
            has_to=bool(data.get("to")),
            has_from=bool(data.get("from")),
            native_amount=native_amount,
            native_currency=native_currency,
            wallet=wallet,
            details=data,
        )
