"""
NumPy reference transpose engine (host memory).

`ReferenceTransposeEngine` implements the `TransposeEngine` contract on the
host with NumPy. It is the correctness oracle for plan semantics and lets the
full plan lifecycle run on machines without CUDA.

Semantics
---------
- Buffers are addressed by raw host pointers, exactly like device pointers
  are for the native engine. Only `BufferKind.HOST_ARRAY` is accepted.
- Layout is column-major (axis 0 fastest). Output axis `i` is input axis
  `permutation[i]`, i.e. `B = np.transpose(A, permutation)` on the
  Fortran-ordered views of the flat buffers.
- Without alpha/beta the elements are moved bit-for-bit, whatever their
  type. With alpha or beta, elements are interpreted as IEEE floats of the
  plan's element width (2, 4 or 8 bytes) and
  `B = alpha * A^T + beta * B` is computed; other widths report
  `INVALID_PARAMETER`. A beta of 0 (or None) never reads B.
- `plan_measure` registers a plan and performs one trial execution on the
  sample buffers, which therefore receive a transposed result.

Every engine call is appended to `calls` as `(operation, details)` for
inspection.
"""

from __future__ import annotations

import ctypes
import itertools
import threading
from typing import Dict, List, Optional, Tuple

import numpy as np

from ...domain._buffer import HOST_KINDS
from ...domain._engine import PlanHandle, TransposeEngine
from ...domain._result import ResultCode
from ...domain._transpose_spec import TransposeSpec

_FLOAT_BY_WIDTH = {2: np.float16, 4: np.float32, 8: np.float64}
_UINT_BY_WIDTH = {1: np.uint8, 2: np.uint16, 4: np.uint32, 8: np.uint64}


def _raw_dtype(width: int) -> np.dtype:
    """Bit-preserving dtype for elements of `width` bytes."""
    if width in _UINT_BY_WIDTH:
        return np.dtype(_UINT_BY_WIDTH[width])
    return np.dtype(f"V{width}")


def _host_view(ptr: int, count: int, dtype: np.dtype) -> np.ndarray:
    """Writable flat array over `count` elements at host address `ptr`."""
    raw = (ctypes.c_char * (count * dtype.itemsize)).from_address(int(ptr))
    return np.frombuffer(raw, dtype=dtype, count=count)


def transpose_reference(
    x: np.ndarray, dims: Tuple[int, ...], permutation: Tuple[int, ...]
) -> np.ndarray:
    """
    Column-major transpose of a flat array.

    Parameters
    ----------
    x : np.ndarray
        Flat input holding `prod(dims)` elements, axis 0 fastest.
    dims : Tuple[int, ...]
        Input dimensions.
    permutation : Tuple[int, ...]
        Output axis `i` is input axis `permutation[i]`.

    Returns
    -------
    np.ndarray
        Flat transposed copy, column-major over `dims[permutation]`.
    """
    a = np.reshape(x, dims, order="F")
    return np.transpose(a, permutation).reshape(-1, order="F").copy()


class ReferenceTransposeEngine(TransposeEngine):
    """
    Host NumPy implementation of the transpose engine contract.

    Attributes
    ----------
    calls : List[Tuple[str, dict]]
        Log of engine calls in order.
    initialize_count : int
        Number of times `initialize()` actually ran.
    """

    accepted_kinds = HOST_KINDS

    def __init__(self) -> None:
        super().__init__()
        self._plans: Dict[PlanHandle, Tuple[TransposeSpec, int, int]] = {}
        self._handles = itertools.count(1)
        self._lock = threading.Lock()
        self.calls: List[Tuple[str, dict]] = []
        self.initialize_count = 0

    @property
    def live_handles(self) -> List[PlanHandle]:
        """Handles created and not yet destroyed."""
        with self._lock:
            return sorted(self._plans)

    def _record(self, op: str, **details) -> None:
        with self._lock:
            self.calls.append((op, details))

    def initialize(self) -> None:
        self._record("initialize")
        self.initialize_count += 1

    def plan(
        self, spec: TransposeSpec, element_width: int, stream: int
    ) -> Tuple[PlanHandle, int]:
        self._record("plan", spec=spec, element_width=element_width, stream=stream)
        return self._register(spec, element_width, stream)

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
        self._record(
            "plan_measure",
            spec=spec,
            element_width=element_width,
            stream=stream,
            alpha=alpha,
            beta=beta,
        )
        handle, code = self._register(spec, element_width, stream)
        if code != ResultCode.SUCCESS:
            return handle, code

        code = self._run(handle, input_ptr, output_ptr, alpha, beta)
        if code != ResultCode.SUCCESS:
            with self._lock:
                self._plans.pop(handle, None)
            return 0, code
        return handle, code

    def execute(
        self,
        handle: PlanHandle,
        input_ptr: int,
        output_ptr: int,
        alpha: Optional[float] = None,
        beta: Optional[float] = None,
    ) -> int:
        self._record("execute", handle=handle, alpha=alpha, beta=beta)
        return self._run(handle, input_ptr, output_ptr, alpha, beta)

    def destroy(self, handle: PlanHandle) -> None:
        self._record("destroy", handle=handle)
        with self._lock:
            self._plans.pop(handle, None)

    def _register(
        self, spec: TransposeSpec, element_width: int, stream: int
    ) -> Tuple[PlanHandle, int]:
        if int(element_width) <= 0:
            return 0, int(ResultCode.INVALID_PARAMETER)
        with self._lock:
            handle = next(self._handles)
            self._plans[handle] = (spec, int(element_width), int(stream))
        return handle, int(ResultCode.SUCCESS)

    def _run(
        self,
        handle: PlanHandle,
        input_ptr: int,
        output_ptr: int,
        alpha: Optional[float],
        beta: Optional[float],
    ) -> int:
        with self._lock:
            entry = self._plans.get(handle)
        if entry is None:
            return int(ResultCode.INVALID_PLAN)
        if not input_ptr or not output_ptr:
            return int(ResultCode.INVALID_PARAMETER)

        spec, width, _stream = entry
        n = spec.volume

        if alpha is None and beta is None:
            dtype = _raw_dtype(width)
            src = _host_view(input_ptr, n, dtype)
            dst = _host_view(output_ptr, n, dtype)
            dst[...] = transpose_reference(src, spec.dims, spec.permutation)
            return int(ResultCode.SUCCESS)

        if width not in _FLOAT_BY_WIDTH:
            return int(ResultCode.INVALID_PARAMETER)
        dtype = np.dtype(_FLOAT_BY_WIDTH[width])
        src = _host_view(input_ptr, n, dtype)
        dst = _host_view(output_ptr, n, dtype)

        a = 1.0 if alpha is None else float(alpha)
        b = 0.0 if beta is None else float(beta)
        result = a * transpose_reference(src, spec.dims, spec.permutation)
        if b != 0.0:
            result = result + b * dst
        dst[...] = result.astype(dtype, copy=False)
        return int(ResultCode.SUCCESS)
