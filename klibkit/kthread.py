"""Work-stealing parallel for-loops, a reusable worker pool and a step pipeline."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

ForFunc = Callable[[int, int], Any]
StepFunc = Callable[[Any, int, Any], Any]


class _ForJob:
    """Shared state of one parallel loop: per-worker counters striding by n_threads."""

    def __init__(self, n_threads: int, func: ForFunc, n: int) -> None:
        self.n_threads = n_threads
        self.func = func
        self.n = n
        self.next = list(range(n_threads))
        self.lock = threading.Lock()
        self.error: Optional[BaseException] = None

    def _take(self, tid: int) -> int:
        with self.lock:
            k = self.next[tid]
            self.next[tid] += self.n_threads
            return k

    def _steal(self) -> int:
        with self.lock:
            victim = min(range(self.n_threads), key=self.next.__getitem__)
            k = self.next[victim]
            self.next[victim] += self.n_threads
            return k if k < self.n else -1

    def work(self, tid: int) -> None:
        try:
            while self.error is None:
                i = self._take(tid)
                if i >= self.n:
                    break
                self.func(i, tid)
            while self.error is None:
                i = self._steal()
                if i < 0:
                    break
                self.func(i, tid)
        except BaseException as exc:  # re-raised in the calling thread
            with self.lock:
                if self.error is None:
                    self.error = exc

    def raise_error(self) -> None:
        if self.error is not None:
            raise self.error


def parallel_for(n_threads: int, func: ForFunc, n: int) -> None:
    """Call ``func(i, tid)`` for every ``i`` in ``range(n)`` on ``n_threads`` threads.

    ``tid`` identifies the calling worker. The first exception raised by
    ``func`` stops the loop and is raised again here.
    """
    if n_threads <= 1:
        for i in range(n):
            func(i, 0)
        return
    job = _ForJob(n_threads, func, n)
    threads = [threading.Thread(target=job.work, args=(tid,)) for tid in range(n_threads)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    job.raise_error()


class ForPool:
    """A fixed set of threads that runs parallel for-loops on demand."""

    def __init__(self, n_threads: int) -> None:
        self.n_threads = n_threads
        self._cond = threading.Condition()
        self._generation = 0
        self._pending = 0
        self._job: Optional[_ForJob] = None
        self._closed = False
        self._threads: list[threading.Thread] = []
        if n_threads > 1:
            self._threads = [
                threading.Thread(target=self._worker, args=(tid,), daemon=True)
                for tid in range(n_threads)
            ]
            for t in self._threads:
                t.start()

    def _worker(self, tid: int) -> None:
        seen = 0
        while True:
            with self._cond:
                while self._generation == seen and not self._closed:
                    self._cond.wait()
                if self._closed:
                    return
                seen = self._generation
                job = self._job
            job.work(tid)
            with self._cond:
                self._pending -= 1
                if self._pending == 0:
                    self._cond.notify_all()

    def run(self, func: ForFunc, n: int) -> None:
        """Call ``func(i, tid)`` for every ``i`` in ``range(n)`` and wait."""
        if self._closed:
            raise ValueError("pool is closed")
        if not self._threads:
            for i in range(n):
                func(i, 0)
            return
        job = _ForJob(self.n_threads, func, n)
        with self._cond:
            self._job = job
            self._pending = self.n_threads
            self._generation += 1
            self._cond.notify_all()
            while self._pending:
                self._cond.wait()
            self._job = None
        job.raise_error()

    def close(self) -> None:
        """Stop the worker threads; the pool cannot be used afterwards."""
        with self._cond:
            if self._closed:
                return
            self._closed = True
            self._cond.notify_all()
        for t in self._threads:
            t.join()

    def __enter__(self) -> "ForPool":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


@dataclass
class _Stage:
    index: int
    step: int = 0
    data: Any = None


def pipeline(n_threads: int, func: StepFunc, shared: Any, n_steps: int) -> None:
    """Run ``func(shared, step, data)`` over ``n_steps`` steps on several threads.

    Step 0 gets ``None`` and produces a batch; each later step gets what the
    previous step returned. Returning ``None`` from any step but the last
    ends that worker. A step runs for a batch only after every earlier batch
    has passed it, so steps see batches in order.
    """
    n_threads = max(n_threads, 1)
    cond = threading.Condition()
    stages = [_Stage(index=i) for i in range(n_threads)]
    next_index = n_threads
    errors: list[BaseException] = []

    def blocked(w: _Stage) -> bool:
        return any(o is not w and o.step <= w.step and o.index < w.index for o in stages)

    def run(w: _Stage) -> None:
        nonlocal next_index
        while w.step < n_steps:
            with cond:
                while blocked(w) and not errors:
                    cond.wait()
                if errors:
                    w.step = n_steps
                    cond.notify_all()
                    return
            try:
                w.data = func(shared, w.step, w.data if w.step else None)
            except BaseException as exc:  # re-raised in the calling thread
                with cond:
                    errors.append(exc)
                    w.step = n_steps
                    cond.notify_all()
                return
            with cond:
                if w.step == n_steps - 1 or w.data is not None:
                    w.step = (w.step + 1) % n_steps
                else:
                    w.step = n_steps
                if w.step == 0:
                    w.index = next_index
                    next_index += 1
                cond.notify_all()

    threads = [threading.Thread(target=run, args=(s,)) for s in stages]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    if errors:
        raise errors[0]