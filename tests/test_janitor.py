import random
import threading
from datetime import timedelta
from unittest import mock

from vaultnote.core.errors import StoreUnavailable
from vaultnote.services.janitor import Janitor
from vaultnote.services.message_store import SweepResult


def test_run_sweeps_expired_and_old_consumed(lifecycle, store, clock):
    expired = lifecycle.create("expires", ttl_hours=1)
    consumed = lifecycle.create("read me")
    kept = lifecycle.create("still here", ttl_hours=48)
    lifecycle.consume(consumed.token)

    clock.advance(hours=2)
    result = Janitor(store, consumed_grace_seconds=3600, clock=clock).run()

    assert result == SweepResult(expired=1, consumed=1)
    assert store.get(expired.token) is None
    assert store.get(consumed.token) is None
    assert store.get(kept.token) is not None


def test_consumed_records_survive_grace_window(lifecycle, store, clock):
    created = lifecycle.create("read me")
    lifecycle.consume(created.token)

    clock.advance(minutes=30)
    result = Janitor(store, consumed_grace_seconds=3600, clock=clock).run()

    assert result.total == 0
    assert store.get(created.token).consumed is True


def test_run_logs_and_swallows_store_failure(caplog):
    store = mock.Mock()
    store.delete_expired_and_consumed.side_effect = StoreUnavailable("db down")

    assert Janitor(store).run() is None
    assert "Janitor sweep failed" in caplog.text


def test_maybe_run_respects_cleanup_chance(clock):
    store = mock.Mock()
    store.delete_expired_and_consumed.return_value = SweepResult(0, 0)

    never = Janitor(store, cleanup_chance=0, clock=clock, rng=random.Random(1))
    for _ in range(50):
        assert never.maybe_run() is None
    store.delete_expired_and_consumed.assert_not_called()

    always = Janitor(store, cleanup_chance=100, clock=clock, rng=random.Random(1))
    for _ in range(5):
        assert always.maybe_run() == SweepResult(0, 0)
    assert store.delete_expired_and_consumed.call_count == 5


def test_maybe_run_passes_grace_cutoff(clock):
    store = mock.Mock()
    store.delete_expired_and_consumed.return_value = SweepResult(0, 0)

    Janitor(store, consumed_grace_seconds=600, cleanup_chance=100, clock=clock).maybe_run()

    store.delete_expired_and_consumed.assert_called_once_with(
        clock.now, consumed_older_than=clock.now - timedelta(seconds=600)
    )


def test_periodic_tick_runs_until_stopped():
    swept = threading.Event()
    store = mock.Mock()

    def sweep(now, consumed_older_than):
        swept.set()
        return SweepResult(0, 0)

    store.delete_expired_and_consumed.side_effect = sweep
    janitor = Janitor(store)

    janitor.start(0.01)
    try:
        assert janitor.running
        assert swept.wait(timeout=5)
    finally:
        janitor.stop(timeout=5)
    assert not janitor.running


def test_periodic_tick_survives_failures():
    calls = []
    store = mock.Mock()

    def sweep(now, consumed_older_than):
        calls.append(now)
        raise StoreUnavailable("db down")

    store.delete_expired_and_consumed.side_effect = sweep
    janitor = Janitor(store)

    janitor.start(0.01)
    try:
        for _ in range(500):
            if len(calls) >= 2:
                break
            threading.Event().wait(0.01)
    finally:
        janitor.stop(timeout=5)
    assert len(calls) >= 2
