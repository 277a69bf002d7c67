import random
import threading
import time
from datetime import datetime, time as dtime

import pytest
import pytz

from gameauto.core.clock import MIN_SLEEP_MS, Clock
from gameauto.core.timeutils import is_time_of_day_reached, now_local, parse_clock_time


def test_sleep_completes_in_chunks():
    clock = Clock(chunk_ms=20)
    started = time.perf_counter()
    assert clock.sleep(60) is True
    assert time.perf_counter() - started >= 0.05


def test_sleep_returns_false_when_already_stopped():
    stop = threading.Event()
    stop.set()
    started = time.perf_counter()
    assert Clock(chunk_ms=20).sleep(5000, stop) is False
    assert time.perf_counter() - started < 0.5


def test_sleep_interrupted_within_one_chunk():
    stop = threading.Event()
    clock = Clock(chunk_ms=50)
    timer = threading.Timer(0.05, stop.set)
    timer.start()
    started = time.perf_counter()
    try:
        assert clock.sleep(5000, stop) is False
    finally:
        timer.cancel()
    assert time.perf_counter() - started < 1.0


def test_jitter_has_floor_and_no_variance_mode():
    clock = Clock(rng=random.Random(4))
    assert clock.jitter(100, 0) == 100
    assert clock.jitter(0) == MIN_SLEEP_MS
    samples = [clock.jitter(500) for _ in range(2000)]
    assert all(s >= MIN_SLEEP_MS for s in samples)
    assert sum(samples) / len(samples) == pytest.approx(500, abs=10)


@pytest.mark.parametrize(
    "text, expected",
    [("21:00", dtime(21, 0)), ("07:05:30", dtime(7, 5, 30)), (" 0:00 ", dtime(0, 0))],
)
def test_parse_clock_time(text, expected):
    assert parse_clock_time(text) == expected


@pytest.mark.parametrize("text", ["", "21", "ab:cd", "25:00", "1:2:3:4"])
def test_parse_clock_time_rejects(text):
    with pytest.raises(ValueError):
        parse_clock_time(text)


def test_time_of_day_reached_with_aware_datetime():
    tz = pytz.timezone("Asia/Shanghai")
    target = dtime(21, 0)
    assert not is_time_of_day_reached(target, tz.localize(datetime(2024, 1, 1, 20, 59, 59)))
    assert is_time_of_day_reached(target, tz.localize(datetime(2024, 1, 1, 21, 0)))


def test_now_local_uses_configured_zone():
    from gameauto.core.config import settings

    assert now_local().tzinfo.zone == settings.timezone
