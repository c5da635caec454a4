"""Unit tests for the catalog reader/writer lock."""

import threading
import time
from collections.abc import Callable
from contextlib import AbstractContextManager

from crane.domain.locking import RWLock


def _record(enter: Callable[[], AbstractContextManager], label: str, order: list[str]) -> None:
    with enter():
        order.append(label)


class TestRWLock:
    """Tests for RWLock."""

    def test_readers_share(self) -> None:
        lock = RWLock()
        entered = threading.Event()

        def reader() -> None:
            with lock.read():
                entered.set()

        with lock.read():
            thread = threading.Thread(target=reader)
            thread.start()
            assert entered.wait(timeout=2)
        thread.join(timeout=2)

    def test_writer_waits_for_reader(self) -> None:
        lock = RWLock()
        order: list[str] = []

        with lock.read():
            writer = threading.Thread(target=_record, args=(lock.write, "write", order))
            writer.start()
            writer.join(timeout=0.1)
            assert writer.is_alive()
            order.append("read")
        writer.join(timeout=2)

        assert order == ["read", "write"]

    def test_waiting_writer_blocks_new_readers(self) -> None:
        lock = RWLock()
        order: list[str] = []

        with lock.read():
            writer = threading.Thread(target=_record, args=(lock.write, "write", order))
            writer.start()
            deadline = time.monotonic() + 2
            while not lock._waiting_writers and time.monotonic() < deadline:
                time.sleep(0.01)

            reader = threading.Thread(target=_record, args=(lock.read, "read", order))
            reader.start()
            reader.join(timeout=0.1)
            assert reader.is_alive()

        writer.join(timeout=2)
        reader.join(timeout=2)
        assert order == ["write", "read"]
