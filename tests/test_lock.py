import pytest

from paket.exceptions import LockError, PaketIOError
from paket.lock import PaketLock


def test_lock_is_released_on_exit(tmp_path):
    path = tmp_path / "lock"

    with PaketLock(path) as lock:
        assert lock.locked
    assert not lock.locked

    # can be taken again once released
    with PaketLock(path, timeout=0.2):
        pass


def test_lock_released_on_error(tmp_path):
    path = tmp_path / "lock"

    with pytest.raises(RuntimeError):
        with PaketLock(path):
            raise RuntimeError("boom")

    with PaketLock(path, timeout=0.2) as lock:
        assert lock.locked


def test_concurrent_holder_times_out(tmp_path):
    path = tmp_path / "lock"

    with PaketLock(path):
        with pytest.raises(LockError):
            PaketLock(path, timeout=0.2, poll_interval=0.05).acquire()


def test_invalid_timeout(tmp_path):
    with pytest.raises(ValueError):
        PaketLock(tmp_path / "lock", timeout=0)


def test_lock_under_a_regular_file(tmp_path):
    (tmp_path / "file").write_text("")

    with pytest.raises(PaketIOError):
        PaketLock(tmp_path / "file" / "sub" / "lock").acquire()
