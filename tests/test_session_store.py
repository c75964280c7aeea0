import threading
import time

from walletwatch.session_store import SessionStore


def test_get_set_clear_has():
    store = SessionStore()
    assert store.get() is None
    assert not store.has()

    store.set("abc")
    assert store.get() == "abc"
    assert store.has()

    store.clear()
    assert store.get() is None
    assert not store.has()


def test_acquire_creates_once_and_release_closes():
    store = SessionStore()

    token, created = store.acquire(lambda: "t1")

    assert (token, created) == ("t1", True)
    assert store.get() == "t1"
    assert store.release("t1") is True
    assert store.get() is None


def test_nested_acquire_shares_lease():
    store = SessionStore()
    store.acquire(lambda: "t1")

    token, created = store.acquire(lambda: "t2")

    assert (token, created) == ("t1", False)
    assert store.lease_count("t1") == 2
    assert store.release("t1") is False
    assert store.get() == "t1"
    assert store.release("t1") is True


def test_caller_managed_token_is_never_released():
    store = SessionStore()
    store.set("mine")

    token, created = store.acquire(lambda: "other")

    assert (token, created) == ("mine", False)
    assert store.release("mine") is False
    assert store.get() == "mine"


def test_release_after_clear_still_reports_close():
    store = SessionStore()
    store.acquire(lambda: "t1")
    store.clear()

    assert store.release("t1") is True
    assert store.get() is None


def test_failed_factory_leaves_slot_empty():
    store = SessionStore()

    def boom():
        raise RuntimeError("no capacity")

    try:
        store.acquire(boom)
    except RuntimeError:
        pass
    assert not store.has()
    assert store.lease_count("anything") == 0


def test_concurrent_acquire_calls_factory_once():
    store = SessionStore()
    calls = []
    start = threading.Barrier(6)

    def factory():
        calls.append(1)
        time.sleep(0.05)
        return "shared"

    tokens = []

    def worker():
        start.wait()
        tokens.append(store.acquire(factory)[0])

    threads = [threading.Thread(target=worker) for _ in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(calls) == 1
    assert tokens == ["shared"] * 6
    assert store.lease_count("shared") == 6


def test_forget_drops_outstanding_leases():
    store = SessionStore()
    store.acquire(lambda: "t1")
    store.acquire(lambda: "t2")

    store.forget("t1")

    assert not store.has()
    assert store.lease_count("t1") == 0
    assert store.release("t1") is False
