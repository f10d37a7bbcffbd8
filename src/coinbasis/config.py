import logging
from dataclasses import dataclass, field
from datetime import tzinfo

from dateutil import tz

from coinbasis.const import DEFAULT_NATIVE_CURRENCY


@dataclass
class Config:
    timezone: tzinfo = field(default_factory=tz.tzlocal)
    native_currency: str = DEFAULT_NATIVE_CURRENCY
    sort_by_time: bool = False
    log_level: int = logging.INFO
    use_colour: bool = True

    @property
    def logging_enabled(self) -> bool:
        return self.log_level != logging.CRITICAL

    def reset(self) -> None:
        Config.__init__(self)


config = Config()
