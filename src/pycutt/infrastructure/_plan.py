"""
Transpose plan lifecycle management.

`TransposePlan` turns a validated `TransposeSpec` and a stream into a
reusable engine plan and owns that plan's native handle.

Lifecycle
---------
A plan is a small state machine over three tagged variants:

    Unresolved() --resolve--> Resolved(handle, element_width) --dispose--> Disposed()
         \\__________________________dispose________________________________/

- Construction validates the spec, binds the stream and leaves the plan
  `Unresolved`: the element width is not known yet.
- The plan becomes `Resolved` exactly once, either eagerly when built with
  `TransposePlan.measured(...)` (measured strategy over sample buffers), or
  lazily on the first `execute` (direct strategy, element width taken from
  the input buffer).
- `dispose()` destroys the native handle if, and only if, the plan is
  `Resolved`. It is idempotent and is also run by `__exit__`.

The native handle lives only inside the `Resolved` variant, so a handle can
never be observed on an unresolved or disposed plan.

Per-state behaviour is registered as control paths (see
`pycutt.domain.utils._control_path`) instead of branching on the state in
method bodies.

Resource safety
---------------
- A failed resolution leaves the plan `Unresolved` with no handle; a later
  `dispose()` is a no-op.
- A failed `execute` leaves the plan `Resolved` and ready to retry.
- A `weakref.finalize` safety net destroys the handle of a resolved plan
  that is garbage-collected without being disposed, and emits a
  `ResourceWarning`.

Thread safety
-------------
State transitions and executions of one plan are serialised by an internal
lock. Distinct plans are independent.
"""

from __future__ import annotations

import threading
import warnings
import weakref
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Optional

from ..domain._buffer import BufferView
from ..domain._engine import PlanHandle, TransposeEngine
from ..domain._errors import EngineError, InvalidParameterError, PlanDisposedError
from ..domain._result import ResultCode
from ..domain._stream import resolve_stream
from ..domain._transpose_spec import Scaling, TransposeSpec
from ..domain.utils._control_path import create_path_builder
from ._buffers import element_width, raw_pointer, same_element_type, validate


class PlanState(Enum):
    """Lifecycle states of a `TransposePlan`."""

    UNRESOLVED = "unresolved"
    RESOLVED = "resolved"
    DISPOSED = "disposed"


@dataclass(frozen=True)
class _Unresolved:
    tag: ClassVar[PlanState] = PlanState.UNRESOLVED


@dataclass(frozen=True)
class _Resolved:
    handle: PlanHandle
    element_width: int
    strategy: str
    tag: ClassVar[PlanState] = PlanState.RESOLVED


@dataclass(frozen=True)
class _Disposed:
    tag: ClassVar[PlanState] = PlanState.DISPOSED


def _collect_unreleased(engine: TransposeEngine, handle: PlanHandle) -> None:
    try:
        warnings.warn(
            f"TransposePlan with native handle {handle} was garbage-collected "
            "without dispose()",
            ResourceWarning,
            stacklevel=2,
        )
    finally:
        # Never raise in finalizers
        try:
            engine.destroy(handle)
        except Exception:
            pass


class TransposePlan:
    """
    Owner of one engine transpose plan.

    Parameters
    ----------
    spec : TransposeSpec
        Rank, dimensions and permutation of the transpose.
    stream : optional
        Stream descriptor (None, int handle, `pycutt.Stream`, or an object
        implementing `__cuda_stream__`). None selects the default stream.
    engine : TransposeEngine
        Engine that compiles and runs the plan.

    Raises
    ------
    InvalidParameterError
        If `spec` is not a `TransposeSpec` or the stream is not recognised.
        No engine call is made in that case.

    Notes
    -----
    Construction runs the engine's one-time initialization gate.
    """

    def __init__(
        self,
        spec: TransposeSpec,
        stream: Any = None,
        *,
        engine: TransposeEngine,
    ) -> None:
        if not isinstance(spec, TransposeSpec):
            raise InvalidParameterError(
                f"spec must be a TransposeSpec, got: {spec!r}", "spec"
            )
        if not isinstance(engine, TransposeEngine):
            raise InvalidParameterError(
                f"engine must be a TransposeEngine, got: {engine!r}", "engine"
            )
        self._spec = spec
        self._stream = resolve_stream(stream)
        self._engine = engine
        self._variant: Any = _Unresolved()
        self._finalizer: Optional[weakref.finalize] = None
        self._lock = threading.Lock()

        engine.ensure_initialized()

    @classmethod
    def measured(
        cls,
        spec: TransposeSpec,
        stream: Any,
        sample_input: Any,
        sample_output: Any,
        alpha: Any = None,
        beta: Any = None,
        *,
        engine: TransposeEngine,
    ) -> "TransposePlan":
        """
        Create a plan and resolve it by measuring candidates on samples.

        The sample buffers determine the element width and are used for
        timing only; they are not retained. `sample_output` is overwritten.

        Raises
        ------
        InvalidParameterError
            If the spec, stream or sample buffers are invalid.
        EngineError
            If measured planning reports a non-success code. No handle is
            held in that case.
        """
        plan = cls(spec, stream, engine=engine)
        scaling = Scaling.of(alpha, beta)
        with plan._lock:
            in_view, out_view = plan._validate_pair(sample_input, sample_output)
            width = element_width(in_view)
            handle, code = engine.plan_measure(
                spec,
                width,
                plan._stream,
                raw_pointer(in_view),
                raw_pointer(out_view),
                scaling.alpha,
                scaling.beta,
            )
            plan._adopt(handle, code, width, "plan_measure")
        return plan

    # ------------------------------------------------------------------
    # state
    # ------------------------------------------------------------------

    @property
    def _state(self) -> PlanState:
        return self._variant.tag

    @property
    def state(self) -> PlanState:
        """Current lifecycle state."""
        return self._variant.tag

    @property
    def is_resolved(self) -> bool:
        return self._variant.tag is PlanState.RESOLVED

    @property
    def spec(self) -> TransposeSpec:
        return self._spec

    @property
    def stream(self) -> int:
        """Raw handle of the bound stream (0 for the default stream)."""
        return self._stream

    @property
    def engine(self) -> TransposeEngine:
        return self._engine

    @property
    def element_width(self) -> Optional[int]:
        """Element size the plan was resolved for, None until resolved."""
        return getattr(self._variant, "element_width", None)

    @property
    def strategy(self) -> Optional[str]:
        """Resolution strategy ("plan" or "plan_measure"), None until resolved."""
        return getattr(self._variant, "strategy", None)

    def __repr__(self) -> str:
        return (
            f"TransposePlan(dims={list(self._spec.dims)}, "
            f"permutation={list(self._spec.permutation)}, "
            f"stream=0x{self._stream:x}, state={self.state.value})"
        )

    # ------------------------------------------------------------------
    # operations
    # ------------------------------------------------------------------

    def execute(self, idata: Any, odata: Any, alpha: Any = None, beta: Any = None) -> None:
        """
        Execute the plan out-of-place.

        Performs `B[pi(i)] = alpha * A[i] + beta * B[pi(i)]` on the bound
        stream. The call returns once the work is enqueued; it does not
        synchronize the stream.

        Parameters
        ----------
        idata : buffer
            Input tensor A, `volume` elements.
        odata : buffer
            Output tensor B, `volume` elements, same dtype as `idata`.
        alpha : float, optional
            Input scale; None means 1.
        beta : float, optional
            Output scale; None means 0 (B is overwritten).

        Raises
        ------
        InvalidParameterError
            If a buffer is of the wrong kind, too small, read-only (output),
            of a different dtype than the other, or of a different element
            width than the resolved plan.
        EngineError
            If planning or execution reports a non-success code.
        PlanDisposedError
            If the plan has been disposed.
        """
        with self._lock:
            if self._state is PlanState.DISPOSED:
                raise PlanDisposedError()
            scaling = Scaling.of(alpha, beta)
            in_view, out_view = self._validate_pair(idata, odata)
            handle = self._handle_for(element_width(in_view))
            code = self._engine.execute(
                handle,
                raw_pointer(in_view),
                raw_pointer(out_view),
                scaling.alpha,
                scaling.beta,
            )
        if code != ResultCode.SUCCESS:
            raise EngineError(code, "execute")

    def dispose(self) -> None:
        """
        Release the native plan.

        Safe to call any number of times and on plans that were never
        resolved; only the first call on a resolved plan reaches the
        engine's `destroy`.
        """
        with self._lock:
            self._release()

    close = dispose

    def __enter__(self) -> "TransposePlan":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()

    # ------------------------------------------------------------------
    # helpers (per-state implementations registered below)
    # ------------------------------------------------------------------

    def _validate_pair(self, idata: Any, odata: Any) -> tuple[BufferView, BufferView]:
        kinds = self._engine.accepted_kinds
        in_view = validate(idata, kinds, "Input array")
        out_view = validate(odata, kinds, "Output array", writable=True)
        same_element_type(in_view, out_view)
        volume = self._spec.volume
        for name, view in (("Input array", in_view), ("Output array", out_view)):
            if view.size < volume:
                raise InvalidParameterError(
                    f"{name} holds {view.size} elements, the plan needs {volume}",
                    name,
                )
        return in_view, out_view

    def _adopt(self, handle: PlanHandle, code: int, width: int, strategy: str) -> None:
        """Move to `Resolved` with a freshly created handle."""
        if code != ResultCode.SUCCESS:
            raise EngineError(code, strategy)
        self._variant = _Resolved(int(handle), int(width), strategy)
        self._finalizer = weakref.finalize(
            self, _collect_unreleased, self._engine, int(handle)
        )
        # the native library may already be gone at interpreter exit
        self._finalizer.atexit = False

    def _handle_for(self, width: int) -> PlanHandle:
        """Return the handle to execute with, resolving the plan if needed."""
        ...

    def _release(self) -> None:
        """Destroy the handle if one is held and move to `Disposed`."""
        ...


control_path = create_path_builder()


@control_path(
    TransposePlan,
    TransposePlan._handle_for,
    PlanState.UNRESOLVED,
    trap_exception=PlanDisposedError,
)
def _handle_for_unresolved(self: TransposePlan, width: int) -> PlanHandle:
    handle, code = self._engine.plan(self._spec, width, self._stream)
    self._adopt(handle, code, width, "plan")
    return self._variant.handle


@control_path(
    TransposePlan,
    TransposePlan._handle_for,
    PlanState.RESOLVED,
    trap_exception=PlanDisposedError,
)
def _handle_for_resolved(self: TransposePlan, width: int) -> PlanHandle:
    resolved: _Resolved = self._variant
    if width != resolved.element_width:
        raise InvalidParameterError(
            f"Plan was resolved for {resolved.element_width}-byte elements, "
            f"got {width}-byte elements",
            "idata",
        )
    return resolved.handle


@control_path(TransposePlan, TransposePlan._release, PlanState.UNRESOLVED)
def _release_unresolved(self: TransposePlan) -> None:
    self._variant = _Disposed()


@control_path(TransposePlan, TransposePlan._release, PlanState.RESOLVED)
def _release_resolved(self: TransposePlan) -> None:
    resolved: _Resolved = self._variant
    self._variant = _Disposed()
    if self._finalizer is not None:
        self._finalizer.detach()
        self._finalizer = None
    self._engine.destroy(resolved.handle)


@control_path(TransposePlan, TransposePlan._release, PlanState.DISPOSED)
def _release_disposed(self: TransposePlan) -> None:
    pass
