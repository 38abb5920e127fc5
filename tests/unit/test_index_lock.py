"""Tests for the exclusive reindex lock."""

import os

import pytest

from devcanvas.core.exceptions import IndexBusyError, IndexStateError
from devcanvas.providers.database.locks import IndexLock


def test_acquire_and_release(tmp_path):
    lock = IndexLock(tmp_path / "state" / "index.lock")
    lock.acquire()
    assert lock.is_held
    assert lock.read_meta()["pid"] == os.getpid()

    lock.release()
    assert not lock.is_held
    assert lock.read_meta() == {}


def test_second_holder_is_rejected(tmp_path):
    path = tmp_path / "index.lock"
    first = IndexLock(path)
    second = IndexLock(path)

    assert first.try_acquire()
    try:
        assert not second.try_acquire()
        with pytest.raises(IndexBusyError, match=str(os.getpid())):
            second.acquire()
    finally:
        first.release()

    assert second.try_acquire()
    second.release()


def test_busy_error_is_an_index_state_error():
    assert issubclass(IndexBusyError, IndexStateError)


def test_context_manager(tmp_path):
    path = tmp_path / "index.lock"
    with IndexLock(path) as lock:
        assert lock.is_held
        assert not IndexLock(path).try_acquire()

    again = IndexLock(path)
    assert again.try_acquire()
    again.release()


def test_reacquire_is_idempotent(tmp_path):
    lock = IndexLock(tmp_path / "index.lock")
    assert lock.try_acquire()
    assert lock.try_acquire()
    lock.release()
    lock.release()
