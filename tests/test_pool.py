import threading
import time
from concurrent.futures import CancelledError
from unittest import mock

import pytest

from routehttp.pool import ThreadPool, default_pool_size


def _wait_until(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_push_returns_result_with_thread_id():
    with ThreadPool(3) as pool:
        future = pool.push(lambda tid, a, b=0: (tid, a + b), 2, b=5)
        tid, value = future.result(timeout=5)
    assert value == 7
    assert 0 <= tid < 3


def test_exception_is_delivered_through_future():
    def boom(tid):
        raise KeyError("missing")

    with ThreadPool(1) as pool:
        future = pool.push(boom)
        with pytest.raises(KeyError):
            future.result(timeout=5)


def test_size_follows_resize():
    pool = ThreadPool(2)
    assert pool.size() == 2
    pool.resize(4)
    assert pool.size() == 4
    pool.resize(1)
    assert pool.size() == 1
    pool.stop(True)
    assert pool.size() == 0


def test_resize_negative_rejected():
    pool = ThreadPool(0)
    with pytest.raises(ValueError):
        pool.resize(-1)


def test_resize_after_stop_is_ignored():
    pool = ThreadPool(1)
    pool.stop()
    pool.resize(3)
    assert pool.size() == 0


def test_idle_workers_are_counted():
    pool = ThreadPool(2)
    try:
        _wait_until(lambda: pool.n_idle() == 2)
        idle = pool.n_idle()
        assert idle == 2
    finally:
        pool.stop(True)


def test_pop_from_pool_without_threads():
    pool = ThreadPool(0)
    future = pool.push(lambda tid, x: x * 2, 21)
    task = pool.pop()
    assert pool.pop() is None
    task(0)
    assert future.result(timeout=1) == 42


def test_clear_queue_cancels_pending():
    pool = ThreadPool(0)
    futures = [pool.push(lambda tid: tid) for _ in range(3)]
    pool.clear_queue()
    assert all(f.cancelled() for f in futures)
    assert pool.pop() is None


def test_stop_without_wait_cancels_queue():
    pool = ThreadPool(0)
    future = pool.push(lambda tid: 1)
    pool.stop(False)
    with pytest.raises(CancelledError):
        future.result(timeout=1)


def test_stop_with_wait_runs_all_tasks():
    done = []
    lock = threading.Lock()

    def work(tid, n):
        with lock:
            done.append(n)

    pool = ThreadPool(2)
    futures = [pool.push(work, n) for n in range(20)]
    pool.stop(True)
    assert sorted(done) == list(range(20))
    assert all(f.done() and not f.cancelled() for f in futures)


def test_context_manager_stops_pool():
    with ThreadPool(2) as pool:
        futures = [pool.push(lambda tid, n: n, n) for n in range(5)]
    assert pool.size() == 0
    assert [f.result(timeout=1) for f in futures] == list(range(5))


def test_default_pool_size_uses_cpu_count():
    with mock.patch("os.cpu_count", return_value=8):
        assert default_pool_size() == 8


def test_default_pool_size_falls_back_to_four():
    with mock.patch("os.cpu_count", return_value=None):
        assert default_pool_size() == 4