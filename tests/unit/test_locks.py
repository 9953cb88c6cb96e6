"""Per-page lock registry tests."""

from __future__ import annotations

import threading

from linkbio.core.locks import PageLocks


def test_lock_is_reentrant() -> None:
    locks = PageLocks()

    with locks.hold(1):
        with locks.hold(1):
            pass


def test_same_page_serializes() -> None:
    locks = PageLocks()
    entered = threading.Event()
    order: list[str] = []

    def worker() -> None:
        with locks.hold(1):
            entered.set()
            order.append("worker")

    with locks.hold(1):
        thread = threading.Thread(target=worker)
        thread.start()
        # Worker is blocked while we hold page 1
        assert not entered.wait(timeout=0.1)
        order.append("main")

    thread.join(timeout=2)
    assert order == ["main", "worker"]


def test_different_pages_do_not_block() -> None:
    locks = PageLocks()
    entered = threading.Event()

    def worker() -> None:
        with locks.hold(2):
            entered.set()

    with locks.hold(1):
        thread = threading.Thread(target=worker)
        thread.start()
        assert entered.wait(timeout=2)

    thread.join(timeout=2)


def test_registry_empties_after_release() -> None:
    locks = PageLocks()

    for page_id in range(100):
        with locks.hold(page_id):
            assert len(locks) == 1

    assert len(locks) == 0


def test_nested_hold_keeps_entry_until_outermost_exit() -> None:
    locks = PageLocks()

    with locks.hold(1):
        with locks.hold(1):
            pass
        assert len(locks) == 1

    assert len(locks) == 0


def test_entry_survives_while_another_thread_waits() -> None:
    locks = PageLocks()
    waiting = threading.Event()
    entered = threading.Event()

    def worker() -> None:
        waiting.set()
        with locks.hold(1):
            entered.set()

    with locks.hold(1):
        thread = threading.Thread(target=worker)
        thread.start()
        assert waiting.wait(timeout=2)
        assert not entered.wait(timeout=0.1)

    thread.join(timeout=2)
    assert entered.is_set()
    assert len(locks) == 0


def test_entry_released_when_body_raises() -> None:
    locks = PageLocks()

    try:
        with locks.hold(1):
            raise RuntimeError("boom")
    except RuntimeError:
        pass

    assert len(locks) == 0
