import io
import threading

import pytest

from klibkit.kthread import ForPool, parallel_for, pipeline

W, H, MAX_ITER = 16, 12, 200
XMIN, XMAX, YMIN, YMAX = -2.0, -1.2, -1.2, 1.2


def _mandel(i):
    x0 = XMIN + (XMAX - XMIN) * (i % W) / W
    y0 = YMIN + (YMAX - YMIN) * (i // W) / H
    x, y = x0, y0
    k = 0
    while k < MAX_ITER:
        z = x * y
        x *= x
        y *= y
        if x + y >= 4:
            break
        x = x - y + x0
        y = z + z + y0
        k += 1
    return k


def _run_grid(n_threads):
    out = [-1] * (W * H)

    def compute(i, tid):
        assert out[i] < 0
        out[i] = _mandel(i)

    parallel_for(n_threads, compute, W * H)
    return out


@pytest.mark.parametrize("n_threads", [1, 2, 4])
def test_parallel_for_fills_every_cell(n_threads):
    out = _run_grid(n_threads)
    assert sum(v < 0 for v in out) == 0
    assert out == [_mandel(i) for i in range(W * H)]


class _Recorder:
    def __init__(self):
        self.seen = []
        self.lock = threading.Lock()

    def __call__(self, i, tid):
        with self.lock:
            self.seen.append((i, tid))


def test_parallel_for_tids_in_range_and_each_index_once():
    recorder = _Recorder()
    parallel_for(3, recorder, 100)
    assert sorted(i for i, _ in recorder.seen) == list(range(100))
    assert all(0 <= tid < 3 for _, tid in recorder.seen)


def test_parallel_for_zero_items():
    calls = []
    parallel_for(4, lambda i, tid: calls.append(i), 0)
    assert calls == []


def test_parallel_for_propagates_error():
    def boom(i, tid):
        if i == 7:
            raise RuntimeError("bad item")

    with pytest.raises(RuntimeError, match="bad item"):
        parallel_for(3, boom, 50)


def test_forpool_runs_repeatedly():
    with ForPool(3) as pool:
        for n in (10, 0, 57):
            hits = [0] * n
            lock = threading.Lock()

            def inc(i, tid):
                with lock:
                    hits[i] += 1

            pool.run(inc, n)
            assert hits == [1] * n


def test_forpool_single_thread_is_serial():
    order = []
    with ForPool(1) as pool:
        pool.run(lambda i, tid: order.append((i, tid)), 5)
    assert order == [(i, 0) for i in range(5)]


def test_forpool_closed_raises():
    pool = ForPool(2)
    pool.close()
    with pytest.raises(ValueError):
        pool.run(lambda i, tid: None, 3)


def test_forpool_propagates_error():
    with ForPool(2) as pool:
        with pytest.raises(KeyError):
            pool.run(lambda i, tid: {}[i], 4)


class _Reverser:
    def __init__(self, text, max_lines, for_threads):
        self.fp = io.StringIO(text)
        self.max_lines = max_lines
        self.for_threads = for_threads
        self.out = []

    def __call__(self, shared, step, data):
        if step == 0:
            lines = []
            for line in self.fp:
                lines.append(line)
                if len(lines) >= self.max_lines:
                    break
            return lines or None
        if step == 1:
            def rev(i, tid):
                s = data[i]
                assert s.endswith("\n")
                data[i] = s[:-1][::-1] + "\n"

            parallel_for(self.for_threads, rev, len(data))
            return data
        while data:
            self.out.append(data.pop())
        return None


@pytest.mark.parametrize("pl_threads,for_threads", [(1, 1), (3, 1), (3, 2)])
def test_pipeline_reverses_lines(pl_threads, for_threads):
    lines = [f"line-{i:03d}-abc\n" for i in range(50)]
    job = _Reverser("".join(lines), 7, for_threads)
    pipeline(pl_threads, job, job, 3)
    expected = []
    for start in range(0, len(lines), 7):
        batch = [s[:-1][::-1] + "\n" for s in lines[start:start + 7]]
        expected.extend(reversed(batch))
    assert job.out == expected


class _StepLog:
    def __init__(self):
        self.calls = []
        self.lock = threading.Lock()


def _log_step(shared, s, data):
    with shared.lock:
        shared.calls.append(s)
    return None


def test_pipeline_empty_input_calls_first_step_per_worker():
    log = _StepLog()
    pipeline(3, _log_step, log, 2)
    assert log.calls == [0, 0, 0]


def _batch_step(shared, s, data):
    if s == 0:
        if shared["next"] >= 20:
            return None
        shared["next"] += 1
        return shared["next"]
    if s == 1:
        return data
    shared["finished"].append(data)
    return None


def test_pipeline_keeps_batch_order_in_last_step():
    state = {"next": 0, "finished": []}
    pipeline(4, _batch_step, state, 3)
    assert state["finished"] == list(range(1, 21))


def test_pipeline_propagates_error():
    def step(shared, s, data):
        if s == 1:
            raise ValueError("step failed")
        return 1

    with pytest.raises(ValueError, match="step failed"):
        pipeline(2, step, None, 2)