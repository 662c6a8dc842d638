"""Tests for per-server locking."""

from __future__ import annotations

import threading

from mcpdoctor.repair.locks import ServerLocks


class TestServerLocks:
    def test_hold_marks_servers_locked(self):
        locks = ServerLocks()

        with locks.hold(["b", "a"]):
            assert locks.is_locked("a")
            assert locks.is_locked("b")
            assert not locks.is_locked("c")

        assert not locks.is_locked("a")
        assert not locks.is_locked("b")

    def test_duplicate_names_are_held_once(self):
        locks = ServerLocks()
        with locks.hold(["a", "a"]):
            assert locks.is_locked("a")

    def test_second_cycle_waits_for_first(self):
        locks = ServerLocks()
        entered = threading.Event()
        order = []

        def second_cycle():
            entered.set()
            with locks.hold(["a"]):
                order.append("second")

        with locks.hold(["a", "b"]):
            worker = threading.Thread(target=second_cycle)
            worker.start()
            entered.wait(timeout=1)
            worker.join(timeout=0.1)
            assert worker.is_alive()
            order.append("first")

        worker.join(timeout=1)
        assert order == ["first", "second"]

    def test_disjoint_servers_do_not_block(self):
        locks = ServerLocks()
        done = threading.Event()

        def other_cycle():
            with locks.hold(["b"]):
                done.set()

        with locks.hold(["a"]):
            worker = threading.Thread(target=other_cycle)
            worker.start()
            assert done.wait(timeout=1)
        worker.join(timeout=1)
