"""Tests for target placeholder templating"""
import threading
from datetime import datetime, timedelta, timezone

from exporter.target import (
    ScrapeTimestampStore,
    TargetTemplater,
    convert_date_format,
    format_rfc3339,
    unix_millis,
)


T0 = datetime(2024, 3, 5, 14, 7, 9, 123000, tzinfo=timezone.utc)
T0_MS = 1709647629123


class FakeClock:
    """Returns a fixed time, advanced manually"""

    def __init__(self, now=T0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now = self.now + timedelta(seconds=seconds)


class TestTargetTemplater:
    """Test ${__from} and ${__to} substitution"""

    def setup_method(self):
        """Setup test fixtures"""
        self.clock = FakeClock()
        self.templater = TargetTemplater(clock=self.clock)

    def test_no_placeholders(self):
        """Test targets without placeholders are unchanged"""
        assert self.templater.resolve("http://host/data.json") == "http://host/data.json"

    def test_first_scrape_starts_at_epoch(self):
        """Test from is 0 on the first scrape of a target"""
        resolved = self.templater.resolve("http://host/?from=${__from}&to=${__to}")

        assert resolved == f"http://host/?from=0&to={T0_MS}"

    def test_from_is_previous_scrape(self):
        """Test from is the previous scrape time of the same target"""
        target = "http://host/?from=${__from}&to=${__to}"
        self.templater.resolve(target)
        self.clock.advance(15)

        resolved = self.templater.resolve(target)

        assert resolved == f"http://host/?from={T0_MS}&to={T0_MS + 15000}"

    def test_targets_are_tracked_separately(self):
        """Test the scrape history is keyed by the unresolved target string"""
        self.templater.resolve("http://a/?from=${__from}")
        self.clock.advance(1)

        assert self.templater.resolve("http://b/?from=${__from}") == "http://b/?from=0"
        assert len(self.templater.timestamps) == 2

    def test_scrape_interval(self):
        """Test from is now minus the interval on the first scrape when configured"""
        templater = TargetTemplater(scrape_interval_seconds=60, clock=self.clock)

        resolved = templater.resolve("${__from}")

        assert resolved == str(T0_MS - 60000)

    def test_iso_format(self):
        """Test :date and :date:iso render RFC 3339"""
        assert self.templater.resolve("${__to:date}") == "2024-03-05T14:07:09Z"
        assert self.templater.resolve("${__to:date:iso}") == "2024-03-05T14:07:09Z"

    def test_seconds_format(self):
        """Test :date:seconds renders Unix seconds"""
        assert self.templater.resolve("${__to:date:seconds}") == "1709647629"

    def test_custom_format(self):
        """Test a custom date pattern"""
        resolved = self.templater.resolve("${__to:date:yyyy-MM-dd HH:mm:ss}")

        assert resolved == "2024-03-05 14:07:09"

    def test_from_epoch_in_local_offset(self):
        """Test the epoch is rendered in the offset of the current time"""
        offset = timezone(timedelta(hours=2))
        templater = TargetTemplater(clock=FakeClock(T0.astimezone(offset)))

        assert templater.resolve("${__from:date}") == "1970-01-01T02:00:00+02:00"

    def test_repeated_placeholders(self):
        """Test every occurrence is substituted with the same instant"""
        resolved = self.templater.resolve("${__to}-${__to}")

        assert resolved == f"{T0_MS}-{T0_MS}"

    def test_concurrent_probes(self):
        """Test concurrent probes of one target each record a scrape"""
        templater = TargetTemplater()
        target = "http://host/?from=${__from}"
        errors = []

        def probe():
            try:
                for _ in range(50):
                    templater.resolve(target)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=probe) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len(templater.timestamps) == 1
        assert templater.timestamps.get(target) is not None


class TestTimestampStore:
    """Test the per-target timestamp map"""

    def test_swap(self):
        """Test swap returns the previous entry"""
        store = ScrapeTimestampStore()

        assert store.swap("t", T0) is None
        assert store.swap("t", T0 + timedelta(seconds=1)) == T0
        assert store.get("t") == T0 + timedelta(seconds=1)

    def test_record(self):
        """Test record overwrites the entry"""
        store = ScrapeTimestampStore()
        store.record("t", T0)

        assert store.get("t") == T0
        assert store.get("other") is None


class TestFormatting:
    """Test date helpers"""

    def test_convert_date_format(self):
        """Test token translation"""
        assert convert_date_format("yyyy-MM-dd") == "%Y-%m-%d"
        assert convert_date_format("dd MMM yy hh:mm tt") == "%d %b %y %I:%M %p"
        assert convert_date_format("100%") == "100%%"

    def test_format_rfc3339(self):
        """Test UTC is rendered with Z and other offsets numerically"""
        assert format_rfc3339(T0) == "2024-03-05T14:07:09Z"
        offset = timezone(timedelta(hours=-5))
        assert format_rfc3339(T0.astimezone(offset)) == "2024-03-05T09:07:09-05:00"

    def test_unix_millis(self):
        """Test millisecond conversion"""
        assert unix_millis(T0) == T0_MS
