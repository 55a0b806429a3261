import pytest
from django.db import OperationalError

from core.db import is_lock_conflict, retry_on_lock_conflict


@pytest.mark.parametrize(
    "message",
    [
        "database table is locked: bookings_booking",
        "database is locked",
        "deadlock detected",
        "could not obtain lock on row in relation \"bookings_booking\"",
    ],
)
def test_lock_conflicts_are_recognised(message):
    assert is_lock_conflict(OperationalError(message))


def test_other_operational_errors_are_not_lock_conflicts():
    assert not is_lock_conflict(OperationalError("no such table: bookings_booking"))


def test_retries_until_the_lock_clears():
    calls = []

    @retry_on_lock_conflict(max_retries=3, delay=0)
    def write():
        calls.append(1)
        if len(calls) < 3:
            raise OperationalError("database is locked")
        return "done"

    assert write() == "done"
    assert len(calls) == 3


def test_gives_up_after_max_retries():
    calls = []

    @retry_on_lock_conflict(max_retries=2, delay=0)
    def write():
        calls.append(1)
        raise OperationalError("database is locked")

    with pytest.raises(OperationalError):
        write()
    assert len(calls) == 3


def test_other_errors_are_not_retried():
    calls = []

    @retry_on_lock_conflict(max_retries=3, delay=0)
    def write():
        calls.append(1)
        raise OperationalError("no such table: payments_payment")

    with pytest.raises(OperationalError):
        write()
    assert calls == [1]
