import threading
import time

import pytest

from street_coverage.clients.throttle import RequestThrottle


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def test_first_request_is_not_delayed():
    clock = FakeClock()
    throttle = RequestThrottle(1.5, clock=clock, sleeper=clock.sleep)
    assert throttle.acquire() == 0.0
    assert clock.sleeps == []


def test_spacing_between_request_starts():
    clock = FakeClock()
    throttle = RequestThrottle(1.5, clock=clock, sleeper=clock.sleep)
    throttle.acquire()
    clock.now = 0.5
    assert throttle.acquire() == pytest.approx(1.0)
    assert clock.now == pytest.approx(1.5)
    clock.now = 5.0
    assert throttle.acquire() == 0.0
    assert clock.sleeps == [pytest.approx(1.0)]


def test_negative_delay_rejected():
    with pytest.raises(ValueError):
        RequestThrottle(-1)


def _wait_until(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return False


def test_waiting_callers_are_served_in_arrival_order():
    """Callers queue behind the head of line and proceed first-in, first-out."""
    release = threading.Event()
    order = []

    def sleeper(seconds):
        order.append(threading.current_thread().name)
        release.wait(2.0)

    # Frozen clock: every caller after the first must wait the full delay.
    throttle = RequestThrottle(1.0, clock=lambda: 0.0, sleeper=sleeper)
    throttle.acquire()

    threads = []
    for position, name in enumerate(["A", "B", "C"], start=1):
        t = threading.Thread(target=throttle.acquire, name=name)
        threads.append(t)
        t.start()
        assert _wait_until(lambda: throttle.pending == position), f"{name} never queued"
        if name == "A":
            assert _wait_until(lambda: order == ["A"]), "A did not reach the head of line"

    assert order == ["A"]
    release.set()
    for t in threads:
        t.join(2.0)
        assert not t.is_alive()
    assert order == ["A", "B", "C"]
    assert throttle.pending == 0
