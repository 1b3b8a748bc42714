from __future__ import annotations

import logging

import pytest
from hypothesis import given, strategies as st

from models.financial_model import GrowthLaw
from models.growth import resolve_growth

bases = st.floats(min_value=0.0, max_value=1e6, allow_nan=False, allow_infinity=False)
rates = st.floats(min_value=-1.5, max_value=1.0, allow_nan=False, allow_infinity=False)
elapsed = st.integers(min_value=0, max_value=52)


@given(base=bases, k=elapsed, law=st.sampled_from(list(GrowthLaw)))
def test_zero_rate_returns_base_for_every_law(base: float, k: int, law: GrowthLaw) -> None:
    assert resolve_growth(base, k, law, 0.0, (0.5, 2.0)) == base


@given(base=bases, k=elapsed, rate=rates)
def test_exponential_growth(base: float, k: int, rate: float) -> None:
    expected = base * max(0.0, 1 + rate) ** k
    assert resolve_growth(base, k, GrowthLaw.EXPONENTIAL, rate) == pytest.approx(expected, rel=1e-9, abs=1e-9)


@given(base=bases, k=elapsed, rate=rates)
def test_linear_growth(base: float, k: int, rate: float) -> None:
    expected = base * max(0.0, 1 + rate * k)
    assert resolve_growth(base, k, GrowthLaw.LINEAR, rate) == pytest.approx(expected, rel=1e-9, abs=1e-9)


@given(base=bases, rate=rates, law=st.sampled_from(list(GrowthLaw)))
def test_first_period_is_never_grown(base: float, rate: float, law: GrowthLaw) -> None:
    assert resolve_growth(base, 0, law, rate, (3.0,)) == base


def test_seasonal_applies_factor_cyclically() -> None:
    factors = (1.0, 0.5, 1.5)
    # k=1 -> factors[1], k=3 -> factors[0], k=5 -> factors[2]
    assert resolve_growth(100.0, 1, GrowthLaw.SEASONAL, 0.1, factors) == pytest.approx(110.0 * 0.5)
    assert resolve_growth(100.0, 3, GrowthLaw.SEASONAL, 0.1, factors) == pytest.approx(100.0 * 1.1 ** 3)
    assert resolve_growth(100.0, 5, GrowthLaw.SEASONAL, 0.1, factors) == pytest.approx(100.0 * 1.1 ** 5 * 1.5)


def test_seasonal_without_factors_is_exponential() -> None:
    assert resolve_growth(100.0, 2, GrowthLaw.SEASONAL, 0.1) == pytest.approx(121.0)


def test_law_accepts_plain_strings() -> None:
    assert resolve_growth(100.0, 2, "linear", 0.1) == pytest.approx(120.0)
    assert resolve_growth(100.0, 2, "exponential", 0.1) == pytest.approx(121.0)


def test_unknown_law_falls_back_to_linear(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="models.growth"):
        value = resolve_growth(100.0, 2, "logistic", 0.1)

    assert value == pytest.approx(120.0)
    assert "logistic" in caplog.text


@pytest.mark.parametrize("law", [GrowthLaw.LINEAR, GrowthLaw.EXPONENTIAL, GrowthLaw.SEASONAL])
@given(base=bases, k=elapsed, rate=rates)
def test_growth_never_turns_negative(law: GrowthLaw, base: float, k: int, rate: float) -> None:
    assert resolve_growth(base, k, law, rate, (1.0, -0.5)) >= 0


def test_linear_decline_floors_at_zero() -> None:
    # 1 - 0.1 * 10 reaches zero at k=10 and stays there
    assert resolve_growth(1000.0, 9, GrowthLaw.LINEAR, -0.1) == pytest.approx(100.0)
    assert resolve_growth(1000.0, 10, GrowthLaw.LINEAR, -0.1) == 0.0
    assert resolve_growth(1000.0, 11, GrowthLaw.LINEAR, -0.1) == 0.0


def test_exponential_rate_below_minus_one_floors_at_zero() -> None:
    assert resolve_growth(100.0, 1, GrowthLaw.EXPONENTIAL, -1.5) == 0.0
    assert resolve_growth(100.0, 2, GrowthLaw.EXPONENTIAL, -1.5) == 0.0
