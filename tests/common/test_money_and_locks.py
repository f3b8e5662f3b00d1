import threading
import time
from decimal import Decimal

import pytest

from hrms.common.locks import KeyedLock
from hrms.common.money import money, to_decimal
from hrms.core.exceptions import ValidationError


def test_money_rounds_half_up_to_cents():
    assert money(Decimal("1000") / 30) == Decimal("33.33")
    assert money("0.005") == Decimal("0.01")
    assert money(2) == Decimal("2.00")


def test_to_decimal_rejects_garbage():
    with pytest.raises(ValidationError):
        to_decimal("abc", "amount")


def test_keyed_lock_serializes_same_key():
    locks = KeyedLock()
    active = []
    overlap = []

    def work():
        with locks.hold(("emp", 1)):
            active.append(1)
            if len(active) > 1:
                overlap.append(True)
            time.sleep(0.01)
            active.pop()

    threads = [threading.Thread(target=work) for _ in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert overlap == []


def test_keyed_lock_different_keys_are_independent():
    locks = KeyedLock()
    with locks.hold("a"):
        acquired = []

        def other():
            with locks.hold("b"):
                acquired.append(True)

        t = threading.Thread(target=other)
        t.start()
        t.join(timeout=1)
        assert acquired == [True]
