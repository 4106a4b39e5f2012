"""
Caller-facing cuTT transpose binding.

`CuTT` is the entry point host code uses:

    with CuTT(3, [4, 6, 8], [2, 0, 1], stream) as t:
        t.execute(idata, odata)               # plan resolved here
        t.execute(idata, odata, alpha=2.0, beta=0.5)

    t = CuTT.measured(3, [4, 6, 8], [2, 0, 1], stream, idata, odata)

The plain constructor defers typing: the plan is compiled on the first
`execute`, once the element width is known. `CuTT.measured` compiles it
immediately by timing candidate kernels on the sample buffers.

Engine selection
----------------
Without an explicit `engine=`, plans use the process default engine: a
`CuttEngine` over the cuTT shared library, loaded and wrapped once per
process. `set_default_engine` replaces it (e.g. with the NumPy
`ReferenceTransposeEngine` on hosts without CUDA).
"""

from __future__ import annotations

import threading
from typing import Any, Optional, Sequence

from ..domain._engine import TransposeEngine
from ..domain._transpose_spec import TransposeSpec
from ._plan import PlanState, TransposePlan
from .native_cuda.python._native_loader import load_cutt_native
from .native_cuda.python.cutt_ctypes import CuttEngine

_default_engine: Optional[TransposeEngine] = None
_default_engine_lock = threading.Lock()


def get_default_engine() -> TransposeEngine:
    """
    Return the process default transpose engine, creating it on first use.

    Raises
    ------
    OSError
        If no engine was set and the cuTT shared library cannot be loaded.
    """
    global _default_engine
    with _default_engine_lock:
        if _default_engine is None:
            _default_engine = CuttEngine(load_cutt_native())
        return _default_engine


def set_default_engine(engine: Optional[TransposeEngine]) -> None:
    """
    Replace the process default engine.

    Passing None restores lazy creation of the native cuTT engine.
    """
    global _default_engine
    if engine is not None and not isinstance(engine, TransposeEngine):
        raise TypeError(f"engine must be a TransposeEngine, got: {engine!r}")
    with _default_engine_lock:
        _default_engine = engine


class CuTT:
    """
    cuTT tensor transpose plan.

    Parameters
    ----------
    rank : int
        Rank of the tensor.
    dims : Sequence[int]
        Dimensions of the tensor (`rank` entries).
    permutation : Sequence[int]
        Transpose permutation (`rank` entries).
    stream : optional
        CUDA stream (None for the default stream).
    engine : TransposeEngine, optional
        Engine to plan and execute with; defaults to `get_default_engine()`.

    Raises
    ------
    InvalidParameterError
        If the request or the stream is malformed.
    """

    def __init__(
        self,
        rank: int,
        dims: Sequence[int],
        permutation: Sequence[int],
        stream: Any = None,
        *,
        engine: Optional[TransposeEngine] = None,
    ) -> None:
        spec = TransposeSpec(rank, dims, permutation)
        self._plan = TransposePlan(
            spec, stream, engine=engine if engine is not None else get_default_engine()
        )

    @classmethod
    def measured(
        cls,
        rank: int,
        dims: Sequence[int],
        permutation: Sequence[int],
        stream: Any,
        idata: Any,
        odata: Any,
        alpha: Any = None,
        beta: Any = None,
        *,
        engine: Optional[TransposeEngine] = None,
    ) -> "CuTT":
        """
        Create a plan and choose the implementation by measuring performance.

        Parameters
        ----------
        rank, dims, permutation, stream
            As for the constructor.
        idata : buffer
            Sample input, `prod(dims)` elements.
        odata : buffer
            Sample output, `prod(dims)` elements; overwritten.
        alpha, beta : float, optional
            Scalars used while measuring.

        Raises
        ------
        InvalidParameterError
            If the request, stream or sample buffers are malformed.
        EngineError
            If measured planning fails.
        """
        spec = TransposeSpec(rank, dims, permutation)
        obj = cls.__new__(cls)
        obj._plan = TransposePlan.measured(
            spec,
            stream,
            idata,
            odata,
            alpha,
            beta,
            engine=engine if engine is not None else get_default_engine(),
        )
        return obj

    @property
    def plan(self) -> TransposePlan:
        """The underlying lifecycle-managed plan."""
        return self._plan

    @property
    def rank(self) -> int:
        return self._plan.spec.rank

    @property
    def dims(self) -> tuple:
        return self._plan.spec.dims

    @property
    def permutation(self) -> tuple:
        return self._plan.spec.permutation

    @property
    def state(self) -> PlanState:
        return self._plan.state

    def execute(self, idata: Any, odata: Any, alpha: Any = None, beta: Any = None) -> None:
        """
        Execute plan out-of-place.

        Performs `B[pi(i)] = alpha * A[i] + beta * B[pi(i)]`.

        Parameters
        ----------
        idata : buffer
            Input data, `prod(dims)` elements.
        odata : buffer
            Output data, `prod(dims)` elements.
        alpha : float, optional
            Scalar for input.
        beta : float, optional
            Scalar for output.
        """
        self._plan.execute(idata, odata, alpha, beta)

    def dispose(self) -> None:
        """Release the native plan handle (idempotent)."""
        self._plan.dispose()

    close = dispose

    def __enter__(self) -> "CuTT":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()

    def __repr__(self) -> str:
        return f"CuTT({self._plan!r})"
