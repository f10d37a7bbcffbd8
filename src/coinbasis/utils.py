from collections.abc import Callable, Iterable, Sequence
from datetime import date, datetime, time, timedelta, tzinfo

from coinbasis.config import config
from coinbasis.const import TIMESTAMP_FORMAT


def long_term_cutoff(timestamp: datetime, tzone: tzinfo | None = None) -> datetime:
    """Return midnight, in local time, of the day before the same date
    one year earlier.

    Lots acquired strictly before the cutoff are held long-term.
    """
    tzone = tzone or config.timezone
    d = timestamp.astimezone(tzone).date()

    try:
        year_before = d.replace(year=d.year - 1)
    except ValueError:
        # 29 February rolls over to the next day
        year_before = date(d.year - 1, 3, 1)

    return datetime.combine(year_before - timedelta(days=1), time.min, tzinfo=tzone)


def format_timestamp(timestamp: datetime | None) -> str:
    if timestamp is None:
        return ""
    return timestamp.astimezone(config.timezone).strftime(TIMESTAMP_FORMAT)


def multifilter(filters: Sequence[Callable] | None, iterable: Iterable) -> Iterable:
    if not filters:
        return iterable
    return filter(lambda x: all(f(x) for f in filters), iterable)


def boldify(text: str) -> str:
    return f"\033[1m{text}\033[0m"
