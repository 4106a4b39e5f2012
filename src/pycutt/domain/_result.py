"""
cuTT result codes and their descriptions.

The native library reports every outcome through a small closed set of
integer codes. `describe` turns any integer into display text, falling back
to "Unknown error" for values outside the set.
"""

from __future__ import annotations

from enum import IntEnum


class ResultCode(IntEnum):
    """
    Outcome tags returned by the transpose engine.

    Values mirror the `cuttResult` enum of the native library.
    """

    SUCCESS = 0
    INVALID_PLAN = 1
    INVALID_PARAMETER = 2
    INVALID_DEVICE = 3
    INTERNAL_ERROR = 4
    UNDEFINED_ERROR = 5


UNKNOWN_ERROR_TEXT = "Unknown error"

_DESCRIPTIONS = {
    ResultCode.SUCCESS: "Success",
    ResultCode.INVALID_PLAN: "Invalid plan handle",
    ResultCode.INVALID_PARAMETER: "Invalid input parameter",
    ResultCode.INVALID_DEVICE: (
        "Execution tried on device different than where plan was created"
    ),
    ResultCode.INTERNAL_ERROR: "Internal error",
    ResultCode.UNDEFINED_ERROR: "Undefined error",
}


def describe(code: int) -> str:
    """
    Return the human-readable text for an engine result code.

    Parameters
    ----------
    code : int
        Result code, either a `ResultCode` member or a raw integer.

    Returns
    -------
    str
        Description of the code, or "Unknown error" when the value is not
        part of the closed result set.
    """
    try:
        return _DESCRIPTIONS[ResultCode(int(code))]
    except (ValueError, TypeError):
        return UNKNOWN_ERROR_TEXT
