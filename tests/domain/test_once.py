import threading
import time
import unittest

from pycutt.domain.utils import RunOnce


class TestRunOnce(unittest.TestCase):
    def test_runs_once_sequentially(self) -> None:
        calls = []
        gate = RunOnce(lambda: calls.append(1))
        self.assertFalse(gate.done)
        for _ in range(5):
            gate()
        self.assertEqual(calls, [1])
        self.assertTrue(gate.done)

    def test_runs_once_under_concurrency(self) -> None:
        calls = []
        lock = threading.Lock()

        def init():
            time.sleep(0.02)
            with lock:
                calls.append(threading.get_ident())

        gate = RunOnce(init)
        barrier = threading.Barrier(16)
        finished_after_init = []

        def worker():
            barrier.wait()
            gate()
            # every caller returns only after initialization completed
            finished_after_init.append(len(calls) == 1)

        threads = [threading.Thread(target=worker) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(len(calls), 1)
        self.assertEqual(finished_after_init, [True] * 16)

    def test_failure_leaves_gate_open(self) -> None:
        attempts = []

        def flaky():
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("first try fails")

        gate = RunOnce(flaky)
        with self.assertRaises(RuntimeError):
            gate()
        self.assertFalse(gate.done)
        gate()
        gate()
        self.assertEqual(len(attempts), 2)
        self.assertTrue(gate.done)


if __name__ == "__main__":
    unittest.main()
