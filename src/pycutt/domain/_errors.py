"""
Transpose-related exceptions for pycutt.

This module defines the error taxonomy used by the plan lifecycle manager,
the buffer validator and the binding surface. Failures fall into three
groups:

- Parameter errors: malformed transpose requests, unsupported stream
  descriptors, buffers of the wrong kind, or mismatched element types.
  They are detected locally before any engine call.
- Engine errors: a non-success result code returned by the native
  transpose engine, reported together with its human-readable description.
- Lifecycle errors: use of a plan after it has been disposed.

`InvalidParameterError` also derives from `ValueError`, matching the
`std::invalid_argument -> ValueError` translation callers of the native
binding already expect.
"""

from __future__ import annotations

from typing import Optional

from ._result import ResultCode, describe


class CuttError(RuntimeError):
    """Base class for every error raised by pycutt."""


class InvalidParameterError(CuttError, ValueError):
    """
    Raised when a transpose request or a runtime argument is malformed.

    Parameter errors are reported immediately and are never retried. No
    engine call has been made when this error is raised.

    Attributes
    ----------
    parameter : Optional[str]
        Name of the offending argument, when known (e.g. "permutation",
        "idata", "stream").
    """

    def __init__(self, message: str, parameter: Optional[str] = None) -> None:
        """
        Initialize the InvalidParameterError.

        Parameters
        ----------
        message : str
            Human-readable description of the problem.
        parameter : Optional[str]
            Name of the argument that failed validation.
        """
        super().__init__(message)
        self.parameter = parameter


class EngineError(CuttError):
    """
    Raised when the transpose engine reports a non-success result code.

    Attributes
    ----------
    code : int
        Raw result code returned by the engine.
    operation : str
        Engine operation that produced the code ("plan", "plan_measure",
        "execute").
    """

    def __init__(self, code: int, operation: str) -> None:
        """
        Initialize the EngineError.

        Parameters
        ----------
        code : int
            Result code returned by the engine.
        operation : str
            Name of the engine operation that failed.
        """
        super().__init__(f"cuTT error: {describe(code)}")
        self.code = int(code)
        self.operation = operation

    @property
    def result(self) -> Optional[ResultCode]:
        """The code as a `ResultCode` member, or None when it is unknown."""
        try:
            return ResultCode(self.code)
        except ValueError:
            return None


class PlanDisposedError(CuttError):
    """Raised when a disposed plan is asked to execute."""

    def __init__(self) -> None:
        super().__init__("Transpose plan has already been disposed.")
