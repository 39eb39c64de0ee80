from datetime import date
from enum import Enum

from bizcase_engine import IrrError, IrrResult
from bizcase_service.utils.json import sanitize_for_json


class Color(str, Enum):
    RED = "red"


def test_sanitize_floats():
    assert sanitize_for_json({"a": float("nan"), "b": [float("inf"), 1.5]}) == {"a": None, "b": [None, 1.5]}


def test_sanitize_dates_enums_and_dataclasses():
    data = {"when": date(2026, 1, 31), "color": Color.RED, "irr": IrrResult.fail(IrrError.ALL_SAME), "t": (1, 2)}
    assert sanitize_for_json(data) == {
        "when": "2026-01-31",
        "color": "red",
        "irr": {"rate": None, "error": "ALL_SAME"},
        "t": [1, 2],
    }
