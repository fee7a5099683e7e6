"""Tests for per-session-key serialization."""

import threading
import time

from civicline.services.serialization import KeyedSerializer


class TestKeyedSerializer:
    def test_run_returns_value(self):
        assert KeyedSerializer().run("k", lambda: 42) == 42

    def test_queue_is_released_on_error(self):
        serializer = KeyedSerializer()

        def boom():
            raise ValueError("nope")

        try:
            serializer.run("k", boom)
        except ValueError:
            pass
        assert serializer.pending("k") == 0
        assert serializer.active_keys() == 0

    def test_same_key_never_overlaps(self):
        serializer = KeyedSerializer()
        inside = []
        overlaps = []
        lock = threading.Lock()

        def work():
            with lock:
                inside.append(1)
                if len(inside) > 1:
                    overlaps.append(True)
            time.sleep(0.01)
            with lock:
                inside.pop()

        threads = [threading.Thread(target=serializer.run, args=("k", work)) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert overlaps == []

    def test_waiters_are_admitted_in_arrival_order(self):
        serializer = KeyedSerializer()
        order = []
        gate = threading.Event()

        def first():
            gate.wait(timeout=5)
            order.append(0)

        holder = threading.Thread(target=serializer.run, args=("k", first))
        holder.start()
        while serializer.pending("k") < 1:
            time.sleep(0.001)

        waiters = []
        for n in range(1, 5):
            t = threading.Thread(target=serializer.run, args=("k", lambda n=n: order.append(n)))
            t.start()
            waiters.append(t)
            # Each waiter must be queued before the next one arrives
            while serializer.pending("k") < n + 1:
                time.sleep(0.001)

        gate.set()
        holder.join()
        for t in waiters:
            t.join()

        assert order == [0, 1, 2, 3, 4]

    def test_different_keys_do_not_block(self):
        serializer = KeyedSerializer()
        gate = threading.Event()
        done = threading.Event()

        holder = threading.Thread(target=serializer.run, args=("a", lambda: gate.wait(timeout=5)))
        holder.start()
        while serializer.pending("a") < 1:
            time.sleep(0.001)

        other = threading.Thread(target=serializer.run, args=("b", done.set))
        other.start()
        assert done.wait(timeout=2)
        assert serializer.active_keys() >= 1

        gate.set()
        holder.join()
        other.join()
        assert serializer.active_keys() == 0
