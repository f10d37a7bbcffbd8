from decimal import Decimal
from typing import Final

# Maximum absolute difference accepted between the running balance of a
# transaction and the sum of its open lots.
BALANCE_TOLERANCE: Final = Decimal("1e-14")

DEFAULT_NATIVE_CURRENCY: Final = "USD"

TIMESTAMP_FORMAT: Final = "%Y-%m%b-%d%a %H:%M:%S %Z"

SECONDS_PER_DAY: Final = 86400
