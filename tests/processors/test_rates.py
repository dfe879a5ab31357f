from __future__ import annotations

from decimal import Decimal

import pytest

from revamp_client.errors import InvalidOperationError
from revamp_client.processors.rates import (
    Conversion,
    asset_to_native,
    native_to_asset,
    truncate,
)


def test_asset_to_native_multiplies():
    result = asset_to_native(Decimal("3"), Decimal("0.25"))

    assert result.is_valid
    assert result.value == Decimal("0.75")
    assert result.reason is None


def test_native_to_asset_divides():
    assert native_to_asset(Decimal("10"), Decimal("4")).value == Decimal("2.5")


def test_accepts_int_and_str_inputs():
    assert asset_to_native(2, "1.5").value == Decimal("3.0")
    assert native_to_asset("3", 2).value == Decimal("1.5")


@pytest.mark.parametrize(
    "amount, rate",
    [
        (Decimal("1"), Decimal("0.1")),
        (Decimal("123.456"), Decimal("0.000001")),
        (Decimal("0"), Decimal("7")),
        (Decimal("1000000"), Decimal("3")),
        (Decimal("0.0001"), Decimal("123456.789")),
    ],
)
def test_round_trip_within_display_precision(amount, rate):
    native = asset_to_native(amount, rate).require()
    back = native_to_asset(native, rate).require()

    assert truncate(back, 8) == truncate(amount, 8)


@pytest.mark.parametrize("rate", [Decimal("0"), Decimal("-1"), -5, "0"])
def test_non_positive_rate_is_invalid(rate):
    for convert in (asset_to_native, native_to_asset):
        result = convert(Decimal("1"), rate)
        assert not result.is_valid
        assert result.value is None
        assert "positive" in result.reason


@pytest.mark.parametrize(
    "amount, rate",
    [
        ("abc", Decimal("1")),
        (Decimal("1"), "abc"),
        (None, Decimal("1")),
        (Decimal("NaN"), Decimal("1")),
        (Decimal("1"), Decimal("Infinity")),
        (True, Decimal("1")),
        (Decimal("-0.5"), Decimal("1")),
    ],
)
def test_bad_inputs_are_invalid(amount, rate):
    assert not asset_to_native(amount, rate).is_valid
    assert not native_to_asset(amount, rate).is_valid


def test_require_raises_on_invalid():
    with pytest.raises(InvalidOperationError, match="must be positive"):
        native_to_asset(Decimal("1"), Decimal("0")).require()


def test_invalid_constructor():
    result = Conversion.invalid("nope")
    assert result == Conversion(value=None, reason="nope")


def test_truncate_never_rounds_up():
    assert truncate(Decimal("1.99999"), 4) == Decimal("1.9999")
    assert truncate(Decimal("2"), 2) == Decimal("2.00")


def test_division_keeps_more_than_display_precision():
    value = native_to_asset(Decimal("1"), Decimal("3")).require()
    assert len(str(value).split(".")[1]) > 18
