"""Tests for feed value rendering."""

import math

import pytest

from feedenrich.models.values import is_empty_value, normalize_field_map, to_display_string


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, ""),
        (True, "true"),
        (False, "false"),
        (0, "0"),
        (-7, "-7"),
        (12.0, "12"),
        (19.99, "19.99"),
        (0.1 + 0.2, "0.3"),
        (1.5e-7, "0"),
        (-1e-9, "0"),
        (1234567.125, "1234567.125"),
        ("  kept as is ", "  kept as is "),
        (["a", 1], '["a",1]'),
        ({"k": "été"}, '{"k":"été"}'),
    ],
)
def test_to_display_string(value, expected):
    assert to_display_string(value) == expected


def test_non_finite_floats_render_empty():
    assert to_display_string(math.nan) == ""
    assert to_display_string(math.inf) == ""


def test_floats_are_not_truncated_to_integers():
    assert to_display_string(59.99) != "59"


def test_is_empty_value():
    assert is_empty_value(None)
    assert is_empty_value("   ")
    assert not is_empty_value(0)
    assert not is_empty_value(False)


def test_normalize_field_map():
    assert normalize_field_map({"price": 59.9, "stock": 3, "active": True, "size": None}) == {
        "price": "59.9",
        "stock": "3",
        "active": "true",
        "size": "",
    }
