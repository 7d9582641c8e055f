"""Test the duplicate detector façade."""

import pytest
from loguru import logger

from cbdedup.config import DedupSettings, DedupStrategy
from cbdedup.detector import DuplicateDetector
from cbdedup.exceptions import HistoryStoreError
from cbdedup.history import HistoryRow, HistoryStore, SqliteHistoryStore
from cbdedup.schemas import BroadcastMessage, EtwsInfo, Location, MessageFormat

NOW = 1_700_000_000_000
HOUR_MS = 60 * 60 * 1000
LOCATION = Location(plmn="310260", lac=1234, cid=5678)

def message(serial: int = 1, body: str = "Take shelter now", fmt=MessageFormat.CMAS, **kwargs) -> BroadcastMessage:
    return BroadcastMessage(
        service_category=4370,
        serial_number=serial,
        location=LOCATION,
        body=body,
        message_format=fmt,
        **kwargs,
    )

class FailingHistory(HistoryStore):
    def recent(self, since_ms: int) -> list[HistoryRow]:
        raise HistoryStoreError("database is locked")

    def insert(self, message: BroadcastMessage) -> None:
        raise HistoryStoreError("database is locked")

class StaticHistory(HistoryStore):
    def __init__(self, rows: list[HistoryRow]):
        self.rows = rows
        self.since = None

    def recent(self, since_ms: int) -> list[HistoryRow]:
        self.since = since_ms
        return self.rows

    def insert(self, message: BroadcastMessage) -> None:
        pass

@pytest.fixture
def warning_logs():
    captured = []
    handler_id = logger.add(lambda msg: captured.append(msg.record["message"]), level="WARNING")
    yield captured
    logger.remove(handler_id)

def test_disabled_reports_every_message_new():
    detector = DuplicateDetector(DedupStrategy.DISABLED)
    assert detector.identity_set is None
    assert detector.window_log is None
    assert detector.is_new(message())
    assert detector.is_new(message())

def test_memory_set_suppresses_repeat():
    detector = DuplicateDetector(DedupStrategy.MEMORY_SET, capacity=10)
    assert detector.is_new(message())
    assert not detector.is_new(message())
    assert detector.window_log is None

def test_memory_set_cmas_ignores_body_text():
    detector = DuplicateDetector(DedupStrategy.MEMORY_SET)
    assert detector.is_new(message(body="Tornado warning"))
    assert not detector.is_new(message(body="Tornado warning (resent)"))

def test_memory_set_etws_uses_body_text():
    detector = DuplicateDetector(DedupStrategy.MEMORY_SET)
    info = EtwsInfo(warning_type=0, primary=False)
    assert detector.is_new(message(body="Earthquake", fmt=MessageFormat.ETWS, etws_info=info))
    assert detector.is_new(message(body="Aftershock", fmt=MessageFormat.ETWS, etws_info=info))
    assert not detector.is_new(message(body="Aftershock", fmt=MessageFormat.ETWS, etws_info=info))

def test_memory_set_etws_info_presence():
    detector = DuplicateDetector(DedupStrategy.MEMORY_SET)
    info = EtwsInfo(warning_type=0)
    assert detector.is_new(message(fmt=MessageFormat.ETWS, etws_info=info))
    assert detector.is_new(message(fmt=MessageFormat.ETWS))

def test_memory_set_capacity_eviction():
    detector = DuplicateDetector(DedupStrategy.MEMORY_SET, capacity=3)
    for serial in (1, 2, 3, 4):
        assert detector.is_new(message(serial))
    assert detector.is_new(message(1))

def test_windowed_uses_delivery_time():
    detector = DuplicateDetector(DedupStrategy.WINDOWED_DATABASE, window_ms=12 * HOUR_MS)
    assert detector.is_new(message(delivery_time=NOW))
    assert not detector.is_new(message(delivery_time=NOW + 6 * HOUR_MS))
    assert detector.is_new(message(delivery_time=NOW + 13 * HOUR_MS))
    assert detector.identity_set is None

def test_windowed_compares_full_text():
    detector = DuplicateDetector(DedupStrategy.WINDOWED_DATABASE)
    assert detector.is_new(message(body="Tornado warning", delivery_time=NOW))
    assert detector.is_new(message(body="Tornado warning (resent)", delivery_time=NOW + 1))

def test_windowed_stamps_missing_delivery_time_with_clock():
    clock = iter([NOW, NOW + 13 * HOUR_MS]).__next__
    detector = DuplicateDetector(DedupStrategy.WINDOWED_DATABASE, clock=clock)

    assert detector.is_new(message())
    assert [fp.delivery_time for fp in detector.window_log] == [NOW]
    assert detector.is_new(message())

def test_from_settings_selects_strategy():
    detector = DuplicateDetector.from_settings(DedupSettings(strategy=DedupStrategy.MEMORY_SET, capacity=7))
    assert detector.identity_set.capacity == 7

    detector = DuplicateDetector.from_settings(DedupSettings(strategy=DedupStrategy.DISABLED))
    assert detector.strategy == DedupStrategy.DISABLED

def test_from_settings_seeds_window_from_history(tmp_path):
    store = SqliteHistoryStore(str(tmp_path / "history.db"))
    store.insert(message(serial=1, delivery_time=NOW - 13 * HOUR_MS))
    store.insert(message(serial=2, delivery_time=NOW - 2 * HOUR_MS))
    store.insert(message(serial=3, delivery_time=NOW - HOUR_MS))

    detector = DuplicateDetector.from_settings(
        DedupSettings(strategy=DedupStrategy.WINDOWED_DATABASE),
        history=store,
        clock=lambda: NOW,
    )

    assert [fp.serial_number for fp in detector.window_log] == [3, 2]
    assert not detector.is_new(message(serial=2, delivery_time=NOW))
    assert detector.is_new(message(serial=1, delivery_time=NOW))

def test_seeded_etws_matches_live_rebroadcast(tmp_path):
    store = SqliteHistoryStore(str(tmp_path / "history.db"))
    store.insert(message(body="Tsunami", fmt=MessageFormat.ETWS, delivery_time=NOW - HOUR_MS))

    detector = DuplicateDetector(DedupStrategy.WINDOWED_DATABASE, clock=lambda: NOW)
    assert detector.load_history(store) == 1
    assert not detector.is_new(message(body="Tsunami", fmt=MessageFormat.ETWS, delivery_time=NOW))

def test_load_history_queries_trailing_window():
    history = StaticHistory([])
    detector = DuplicateDetector(DedupStrategy.WINDOWED_DATABASE, window_ms=HOUR_MS, clock=lambda: NOW)

    assert detector.load_history(history) == 0
    assert history.since == NOW - HOUR_MS
    assert len(detector.window_log) == 0

def test_load_history_skips_incomplete_rows():
    history = StaticHistory([
        HistoryRow(location=LOCATION, service_category=4370, serial_number=1,
                   message_body="a", delivery_time=NOW - 10),
        HistoryRow(location=LOCATION, service_category=None, serial_number=2,
                   message_body="b", delivery_time=NOW - 20),
        HistoryRow(location=LOCATION, service_category=4370, serial_number=3,
                   message_body="c", delivery_time=None),
    ])
    detector = DuplicateDetector(DedupStrategy.WINDOWED_DATABASE, clock=lambda: NOW)

    assert detector.load_history(history) == 1

def test_unreadable_history_starts_empty(warning_logs):
    detector = DuplicateDetector.from_settings(
        DedupSettings(strategy=DedupStrategy.WINDOWED_DATABASE),
        history=FailingHistory(),
        clock=lambda: NOW,
    )

    assert len(detector.window_log) == 0
    assert any("Could not load message history" in w for w in warning_logs)
    assert detector.is_new(message(delivery_time=NOW))

def test_missing_history_starts_empty(warning_logs):
    detector = DuplicateDetector.from_settings(DedupSettings(strategy=DedupStrategy.WINDOWED_DATABASE))

    assert len(detector.window_log) == 0
    assert any("No message history configured" in w for w in warning_logs)

def test_load_history_requires_windowed_strategy():
    detector = DuplicateDetector(DedupStrategy.MEMORY_SET)
    with pytest.raises(RuntimeError):
        detector.load_history(StaticHistory([]))
