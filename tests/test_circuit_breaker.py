from agycall.circuit_breaker import CircuitBreaker


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_stays_closed_below_threshold():
    cb = CircuitBreaker(failure_threshold=3)
    cb.record_failure()
    cb.record_failure()
    assert not cb.is_open
    assert cb.allow()


def test_opens_at_threshold():
    clock = FakeClock()
    cb = CircuitBreaker(failure_threshold=3, cooldown_seconds=60, clock=clock)
    for _ in range(3):
        cb.record_failure()
    assert cb.is_open
    assert not cb.allow()


def test_probe_allowed_after_cooldown():
    clock = FakeClock()
    cb = CircuitBreaker(failure_threshold=1, cooldown_seconds=60, clock=clock)
    cb.record_failure()
    clock.now += 61
    assert cb.allow()


def test_success_closes_and_resets():
    clock = FakeClock()
    cb = CircuitBreaker(failure_threshold=1, cooldown_seconds=60, clock=clock)
    cb.record_failure()
    clock.now += 61
    cb.record_success()
    assert not cb.is_open
    assert cb.failures == 0


def test_failed_probe_restarts_cooldown():
    clock = FakeClock()
    cb = CircuitBreaker(failure_threshold=1, cooldown_seconds=60, clock=clock)
    cb.record_failure()
    clock.now += 61
    cb.record_failure()
    clock.now += 30
    assert not cb.allow()
