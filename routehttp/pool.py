"""A fixed-size worker pool whose tasks receive the id of the running thread."""

from __future__ import annotations

import os
import threading
from collections import deque
from concurrent.futures import Future
from typing import Any, Callable


def default_pool_size() -> int:
    """Number of workers to use: the CPU count, or 4 when it is unknown."""
    count = os.cpu_count()
    return count if count and count > 0 else 4


class _Task:
    """A queued call bound to the future that receives its outcome."""

    __slots__ = ("future", "_func", "_args", "_kwargs")

    def __init__(self, func: Callable[..., Any], args: tuple, kwargs: dict) -> None:
        self.future: Future = Future()
        self._func = func
        self._args = args
        self._kwargs = kwargs

    def __call__(self, thread_id: int) -> None:
        if not self.future.set_running_or_notify_cancel():
            return
        try:
            result = self._func(thread_id, *self._args, **self._kwargs)
        except BaseException as exc:
            self.future.set_exception(exc)
        else:
            self.future.set_result(result)


class ThreadPool:
    """Run callables ``func(thread_id, *args, **kwargs)`` on worker threads."""

    def __init__(self, n_threads: int = 0) -> None:
        self._threads: list[threading.Thread] = []
        self._flags: list[threading.Event] = []
        self._queue: deque[_Task] = deque()
        self._cond = threading.Condition()
        self._is_done = False
        self._is_stop = False
        self._n_waiting = 0
        self.resize(n_threads)

    def size(self) -> int:
        """Number of worker threads in the pool."""
        return len(self._threads)

    def n_idle(self) -> int:
        """Number of workers currently waiting for work."""
        with self._cond:
            return self._n_waiting

    def resize(self, n_threads: int) -> None:
        """Grow or shrink the pool; does nothing once the pool is stopped."""
        if n_threads < 0:
            raise ValueError("n_threads must be >= 0")
        if self._is_stop or self._is_done:
            return
        old = len(self._threads)
        if old <= n_threads:
            for index in range(old, n_threads):
                flag = threading.Event()
                thread = threading.Thread(
                    target=self._worker,
                    args=(index, flag),
                    name=f"pool-worker-{index}",
                    daemon=True,
                )
                self._flags.append(flag)
                self._threads.append(thread)
                thread.start()
        else:
            for flag in self._flags[n_threads:]:
                flag.set()
            with self._cond:
                self._cond.notify_all()
            # The removed workers finish on their own; they are not joined.
            del self._threads[n_threads:]
            del self._flags[n_threads:]

    def push(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        """Queue ``func`` and return a future for its result."""
        task = _Task(func, args, kwargs)
        with self._cond:
            self._queue.append(task)
            self._cond.notify()
        return task.future

    def clear_queue(self) -> None:
        """Drop every queued task, cancelling its future."""
        with self._cond:
            pending = list(self._queue)
            self._queue.clear()
        for task in pending:
            task.future.cancel()

    def pop(self) -> Callable[[int], None] | None:
        """Take the next queued task out of the pool, or None if there is none.

        The returned callable takes a thread id and settles the task's future.
        """
        with self._cond:
            return self._queue.popleft() if self._queue else None

    def stop(self, wait: bool = False) -> None:
        """Stop all workers.

        With ``wait`` the queued tasks are run first; without it they are
        cancelled and workers stop after their current task.
        """
        if not wait:
            if self._is_stop:
                return
            self._is_stop = True
            for flag in self._flags:
                flag.set()
            self.clear_queue()
        else:
            if self._is_done or self._is_stop:
                return
            self._is_done = True
        with self._cond:
            self._cond.notify_all()
        current = threading.current_thread()
        for thread in self._threads:
            if thread is not current and thread.is_alive():
                thread.join()
        self.clear_queue()
        self._threads.clear()
        self._flags.clear()

    def __enter__(self) -> ThreadPool:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop(True)

    def _ready(self, flag: threading.Event) -> bool:
        return bool(self._queue) or self._is_done or flag.is_set()

    def _worker(self, index: int, flag: threading.Event) -> None:
        while True:
            with self._cond:
                if not self._ready(flag):
                    self._n_waiting += 1
                    self._cond.wait_for(lambda: self._ready(flag))
                    self._n_waiting -= 1
                if not self._queue:
                    return
                task = self._queue.popleft()
            task(index)
            if flag.is_set():
                return