"""Time placeholder templating for probe targets"""
import re
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from logging_config import get_logger


logger = get_logger(__name__)

# ${__from}, ${__to:date}, ${__from:date:iso}, ${__to:date:seconds}, ${__from:date:yyyy-MM-dd}
PLACEHOLDER_RE = re.compile(r"\$\{__(from|to)(?::(date):?(.*?))?\}")

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Longest tokens first so "yyyy" wins over "yy"
DATE_TOKENS = [
    ("yyyy", "%Y"),
    ("yy", "%y"),
    ("MMMM", "%B"),
    ("MMM", "%b"),
    ("MM", "%m"),
    ("dddd", "%A"),
    ("ddd", "%a"),
    ("dd", "%d"),
    ("HH", "%H"),
    ("hh", "%I"),
    ("mm", "%M"),
    ("ss", "%S"),
    ("tt", "%p"),
    ("ZZZ", "%Z"),
    ("Z", "%z"),
]
_DATE_TOKEN_RE = re.compile("|".join(re.escape(token) for token, _ in DATE_TOKENS))
_DATE_TOKEN_MAP = dict(DATE_TOKENS)


def convert_date_format(fmt: str) -> str:
    """Translate a ``yyyy-MM-dd HH:mm:ss`` style pattern to a strftime format"""
    escaped = fmt.replace("%", "%%")
    return _DATE_TOKEN_RE.sub(lambda m: _DATE_TOKEN_MAP[m.group(0)], escaped)


def format_rfc3339(moment: datetime) -> str:
    """Format like Go's time.RFC3339: seconds precision, 'Z' for UTC"""
    text = moment.isoformat(timespec="seconds")
    if text.endswith("+00:00"):
        text = text[:-6] + "Z"
    return text


def unix_millis(moment: datetime) -> int:
    return (moment - EPOCH) // timedelta(milliseconds=1)


def unix_seconds(moment: datetime) -> int:
    return (moment - EPOCH) // timedelta(seconds=1)


def local_now() -> datetime:
    return datetime.now().astimezone()


class ScrapeTimestampStore:
    """Last scrape time per target string, shared by all concurrent probes"""

    def __init__(self):
        self._timestamps: Dict[str, datetime] = {}
        self._lock = threading.Lock()

    def get(self, target: str) -> Optional[datetime]:
        with self._lock:
            return self._timestamps.get(target)

    def record(self, target: str, moment: datetime) -> None:
        with self._lock:
            self._timestamps[target] = moment

    def swap(self, target: str, moment: datetime) -> Optional[datetime]:
        """Record moment for target and return the previous entry, atomically"""
        with self._lock:
            previous = self._timestamps.get(target)
            self._timestamps[target] = moment
            return previous

    def __len__(self) -> int:
        with self._lock:
            return len(self._timestamps)


class TargetTemplater:
    """Resolves ``${__from}`` / ``${__to}`` placeholders in probe targets.

    ``to`` is the current time. ``from`` is the time of the previous probe of
    the same target string; on the first probe it is the Unix epoch, or now
    minus the scrape interval when one is configured.
    """

    def __init__(self, scrape_interval_seconds: float = 0,
                 timestamps: Optional[ScrapeTimestampStore] = None,
                 clock: Callable[[], datetime] = local_now):
        self.scrape_interval_seconds = scrape_interval_seconds
        self.timestamps = timestamps if timestamps is not None else ScrapeTimestampStore()
        self.clock = clock

    def resolve(self, target: str) -> str:
        """Substitute every placeholder in target and record this scrape"""
        now = self.clock()
        last_scrape = self.timestamps.swap(target, now)

        def replace(match: re.Match) -> str:
            moment = now
            if match.group(1) == "from":
                moment = self._from_time(last_scrape, now)
            return self._format(moment, match.group(2), match.group(3))

        resolved = PLACEHOLDER_RE.sub(replace, target)

        if resolved != target:
            logger.debug("Resolved target placeholders", target=target, resolved=resolved)
        return resolved

    def _from_time(self, last_scrape: Optional[datetime], now: datetime) -> datetime:
        if last_scrape is not None:
            return last_scrape
        if not self.scrape_interval_seconds:
            return EPOCH.astimezone(now.tzinfo)
        return now - timedelta(seconds=self.scrape_interval_seconds)

    @staticmethod
    def _format(moment: datetime, date: Optional[str], fmt: Optional[str]) -> str:
        if not date:
            return str(unix_millis(moment))
        if not fmt or fmt == "iso":
            return format_rfc3339(moment)
        if fmt == "seconds":
            return str(unix_seconds(moment))
        return moment.strftime(convert_date_format(fmt))
