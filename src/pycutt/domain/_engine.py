"""
Transpose engine contract.

A transpose engine is the service that actually compiles and runs
transposes. pycutt treats it as an opaque collaborator reached through five
operations mirroring the native cuTT API:

- `initialize()`: one-time, process-wide setup; first call into the engine
- `plan(...)`: heuristic plan selection, returns `(handle, code)`
- `plan_measure(...)`: plan selection by timing candidates on samples
- `execute(...)`: run a plan, returns a result code
- `destroy(handle)`: release a plan

Handles are opaque integers. Result codes are `ResultCode` values (or any
other integer for unknown outcomes). Engines never raise for engine-level
failures; they report codes and the plan lifecycle manager turns them into
exceptions.

Every engine holds a `RunOnce` gate around `initialize()`. All plans sharing
an engine share the gate, so initialization happens once however many plans
are constructed, from however many threads. Engines over a process-wide
native library override `_make_init_gate` to share one gate per library.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import FrozenSet, Optional, Tuple

from ._buffer import BufferKind
from ._transpose_spec import TransposeSpec
from .utils._once import RunOnce

PlanHandle = int


class TransposeEngine(ABC):
    """
    Abstract transpose engine.

    Subclasses implement the five engine operations and declare the buffer
    kinds they consume via `accepted_kinds`. Subclasses overriding
    `__init__` must call `super().__init__()`.
    """

    #: Buffer kinds this engine can read from and write to.
    accepted_kinds: FrozenSet[BufferKind] = frozenset()

    def __init__(self) -> None:
        self._init_once = self._make_init_gate()

    def _make_init_gate(self) -> RunOnce:
        """Gate guarding `initialize()`; one per engine unless overridden."""
        return RunOnce(self.initialize)

    def ensure_initialized(self) -> None:
        """Run `initialize()` if no caller has completed it yet."""
        self._init_once()

    @property
    def initialized(self) -> bool:
        return self._init_once.done

    @abstractmethod
    def initialize(self) -> None:
        """One-time engine setup. Called through `ensure_initialized`."""

    @abstractmethod
    def plan(
        self, spec: TransposeSpec, element_width: int, stream: int
    ) -> Tuple[PlanHandle, int]:
        """
        Create a plan from static heuristics.

        Parameters
        ----------
        spec : TransposeSpec
            Rank, dimensions and permutation.
        element_width : int
            Size of one element in bytes.
        stream : int
            Raw stream handle the plan is bound to.

        Returns
        -------
        Tuple[int, int]
            `(handle, code)`. The handle is meaningful only when `code` is
            `ResultCode.SUCCESS`.
        """

    @abstractmethod
    def plan_measure(
        self,
        spec: TransposeSpec,
        element_width: int,
        stream: int,
        input_ptr: int,
        output_ptr: int,
        alpha: Optional[float] = None,
        beta: Optional[float] = None,
    ) -> Tuple[PlanHandle, int]:
        """
        Create a plan by running candidate configurations on sample buffers.

        The sample buffers are used for timing only and are not retained.
        The output sample is overwritten.

        Returns
        -------
        Tuple[int, int]
            `(handle, code)`, as for `plan`.
        """

    @abstractmethod
    def execute(
        self,
        handle: PlanHandle,
        input_ptr: int,
        output_ptr: int,
        alpha: Optional[float] = None,
        beta: Optional[float] = None,
    ) -> int:
        """
        Enqueue `B = alpha * transpose(A) + beta * B` on the plan's stream.

        None for alpha or beta is passed to the engine as a NULL pointer.

        Returns
        -------
        int
            Result code.
        """

    @abstractmethod
    def destroy(self, handle: PlanHandle) -> None:
        """Release an engine-side plan."""
