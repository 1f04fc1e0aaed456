from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from evm_engine.errors import BalanceOverflowError
from evm_engine.types.balance import ETH_TO_WEI, Fee, NEP141Wei, Wei
from evm_engine.types.word import U128_MAX, U256_MAX


def test_u128_bounds():
    NEP141Wei(U128_MAX)
    with pytest.raises(BalanceOverflowError):
        NEP141Wei(U128_MAX + 1)
    with pytest.raises(BalanceOverflowError):
        Fee(-1)


def test_checked_arithmetic_returns_none():
    assert NEP141Wei(U128_MAX).checked_add(NEP141Wei(1)) is None
    assert Fee(1).checked_sub(Fee(2)) is None
    assert Wei(U256_MAX).checked_add(Wei(1)) is None


def test_operators_raise_instead_of_wrapping():
    with pytest.raises(BalanceOverflowError):
        Wei(U256_MAX) + Wei(1)
    with pytest.raises(BalanceOverflowError):
        Wei(0) - Wei(1)


def test_wei_conversions():
    assert Wei.from_eth(3) == Wei(3 * ETH_TO_WEI)
    assert Wei.from_eth(2**200) is None
    assert Wei.from_bytes(Wei(42).to_bytes()) == Wei(42)
    assert Wei.from_amount(Fee(5)) == Wei(5)
    with pytest.raises(BalanceOverflowError):
        Wei(U128_MAX + 1).try_into_u128()


def test_bool_is_not_an_amount():
    with pytest.raises(TypeError):
        Wei(True)


@given(a=st.integers(0, U128_MAX), b=st.integers(0, U128_MAX))
def test_checked_add_matches_integers(a, b):
    out = NEP141Wei(a).checked_add(NEP141Wei(b))
    if a + b > U128_MAX:
        assert out is None
    else:
        assert out == NEP141Wei(a + b)
