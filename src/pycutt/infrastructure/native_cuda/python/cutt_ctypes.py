"""
ctypes bindings for the cuTT C API.

This module provides the native transpose engine used by default:

- `CuttLib`: one-time `argtypes`/`restype` binding for the exported cuTT
  entry points
- `CuttEngine`: the `TransposeEngine` implementation over `CuttLib`

Bound C ABI
-----------
    void       cuttInitialize();
    cuttResult cuttPlan(cuttHandle* handle, int rank, const int* dim,
                        const int* permutation, size_t sizeofType,
                        cudaStream_t stream);
    cuttResult cuttPlanMeasure(cuttHandle* handle, int rank, const int* dim,
                               const int* permutation, size_t sizeofType,
                               cudaStream_t stream, const void* idata,
                               void* odata, const void* alpha,
                               const void* beta);
    cuttResult cuttExecute(cuttHandle handle, const void* idata, void* odata,
                           const void* alpha, const void* beta);
    cuttResult cuttDestroy(cuttHandle handle);

Design notes
------------
- Device pointers and stream handles are Python ints, passed as `c_void_p`.
- alpha/beta are passed as pointers to C doubles, or NULL when absent.
- Dimensions and permutation are marshalled into `c_int` arrays; values that
  do not fit a C int are reported as `INVALID_PARAMETER` without calling
  into the library.
- The engine reports result codes and never raises for engine failures.
- `cuttInitialize` runs once per loaded library: every `CuttEngine` over the
  same `CDLL` shares one initialization gate.
"""

from __future__ import annotations

import ctypes
import threading
from ctypes import c_double, c_int, c_size_t, c_uint, c_void_p
from typing import Dict, Optional, Tuple

from ....domain._buffer import DEVICE_KINDS
from ....domain._engine import PlanHandle, TransposeEngine
from ....domain._result import ResultCode
from ....domain._transpose_spec import TransposeSpec
from ....domain.utils._once import RunOnce

_INT_MAX = 2**31 - 1

cuttHandle = c_uint

# keyed by id(CDLL); each gate references its library, so ids stay unique
_init_gates: Dict[int, RunOnce] = {}
_init_gates_lock = threading.Lock()


def _address(scalar: Optional[c_double]) -> Optional[int]:
    """Address of a C double, or None (NULL) when absent."""
    return None if scalar is None else ctypes.addressof(scalar)


class CuttLib:
    """
    Thin binding layer around the cuTT shared library.

    Parameters
    ----------
    lib : ctypes.CDLL
        Loaded cuTT library handle (see `load_cutt_native`).

    Notes
    -----
    Symbols are bound on first use; binding is idempotent.
    """

    def __init__(self, lib: ctypes.CDLL) -> None:
        self.lib = lib
        self._bound = False

    def _bind(self) -> None:
        """Bind argtypes/restype for the cuTT exports (idempotent)."""
        if self._bound:
            return

        lib = self.lib
        for sym in ("cuttInitialize", "cuttPlan", "cuttPlanMeasure", "cuttExecute", "cuttDestroy"):
            if not hasattr(lib, sym):
                raise RuntimeError(f"Native library missing symbol: {sym}")

        lib.cuttInitialize.argtypes = []
        lib.cuttInitialize.restype = None

        lib.cuttPlan.argtypes = [
            ctypes.POINTER(cuttHandle),
            c_int,  # rank
            ctypes.POINTER(c_int),  # dim
            ctypes.POINTER(c_int),  # permutation
            c_size_t,  # sizeofType
            c_void_p,  # stream
        ]
        lib.cuttPlan.restype = c_int

        lib.cuttPlanMeasure.argtypes = [
            ctypes.POINTER(cuttHandle),
            c_int,
            ctypes.POINTER(c_int),
            ctypes.POINTER(c_int),
            c_size_t,
            c_void_p,
            c_void_p,  # idata (device)
            c_void_p,  # odata (device)
            c_void_p,  # alpha
            c_void_p,  # beta
        ]
        lib.cuttPlanMeasure.restype = c_int

        lib.cuttExecute.argtypes = [cuttHandle, c_void_p, c_void_p, c_void_p, c_void_p]
        lib.cuttExecute.restype = c_int

        lib.cuttDestroy.argtypes = [cuttHandle]
        lib.cuttDestroy.restype = c_int

        self._bound = True

    @staticmethod
    def _int_array(values: Tuple[int, ...]):
        return (c_int * len(values))(*values)

    @staticmethod
    def _scalar(value: Optional[float]) -> Optional[c_double]:
        return None if value is None else c_double(float(value))

    def initialize(self) -> None:
        self._bind()
        self.lib.cuttInitialize()

    def plan(
        self,
        rank: int,
        dims: Tuple[int, ...],
        permutation: Tuple[int, ...],
        sizeof_type: int,
        stream: int,
    ) -> Tuple[int, int]:
        self._bind()
        handle = cuttHandle(0)
        st = self.lib.cuttPlan(
            ctypes.byref(handle),
            c_int(int(rank)),
            self._int_array(dims),
            self._int_array(permutation),
            c_size_t(int(sizeof_type)),
            c_void_p(int(stream)),
        )
        return int(handle.value), int(st)

    def plan_measure(
        self,
        rank: int,
        dims: Tuple[int, ...],
        permutation: Tuple[int, ...],
        sizeof_type: int,
        stream: int,
        idata: int,
        odata: int,
        alpha: Optional[float] = None,
        beta: Optional[float] = None,
    ) -> Tuple[int, int]:
        self._bind()
        handle = cuttHandle(0)
        a = self._scalar(alpha)
        b = self._scalar(beta)
        st = self.lib.cuttPlanMeasure(
            ctypes.byref(handle),
            c_int(int(rank)),
            self._int_array(dims),
            self._int_array(permutation),
            c_size_t(int(sizeof_type)),
            c_void_p(int(stream)),
            c_void_p(int(idata)),
            c_void_p(int(odata)),
            _address(a),
            _address(b),
        )
        return int(handle.value), int(st)

    def execute(
        self,
        handle: int,
        idata: int,
        odata: int,
        alpha: Optional[float] = None,
        beta: Optional[float] = None,
    ) -> int:
        self._bind()
        a = self._scalar(alpha)
        b = self._scalar(beta)
        st = self.lib.cuttExecute(
            cuttHandle(int(handle)),
            c_void_p(int(idata)),
            c_void_p(int(odata)),
            _address(a),
            _address(b),
        )
        return int(st)

    def destroy(self, handle: int) -> int:
        self._bind()
        return int(self.lib.cuttDestroy(cuttHandle(int(handle))))


class CuttEngine(TransposeEngine):
    """
    Transpose engine backed by the native cuTT library.

    Parameters
    ----------
    lib : ctypes.CDLL or CuttLib
        Loaded library, or an existing binding wrapper.

    Notes
    -----
    Consumes device memory only (`DeviceBuffer` descriptors and objects
    exposing `__cuda_array_interface__`).
    """

    accepted_kinds = DEVICE_KINDS

    def __init__(self, lib) -> None:
        self.cutt = lib if isinstance(lib, CuttLib) else CuttLib(lib)
        super().__init__()

    def _make_init_gate(self) -> RunOnce:
        """Return the initialization gate shared by all engines over this library."""
        with _init_gates_lock:
            gate = _init_gates.get(id(self.cutt.lib))
            if gate is None:
                gate = RunOnce(self.cutt.initialize)
                _init_gates[id(self.cutt.lib)] = gate
            return gate

    @staticmethod
    def _fits_c_int(spec: TransposeSpec) -> bool:
        return all(d <= _INT_MAX for d in spec.dims)

    def initialize(self) -> None:
        self.cutt.initialize()

    def plan(
        self, spec: TransposeSpec, element_width: int, stream: int
    ) -> Tuple[PlanHandle, int]:
        if not self._fits_c_int(spec):
            return 0, int(ResultCode.INVALID_PARAMETER)
        return self.cutt.plan(
            spec.rank, spec.dims, spec.permutation, element_width, stream
        )

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
        if not self._fits_c_int(spec):
            return 0, int(ResultCode.INVALID_PARAMETER)
        return self.cutt.plan_measure(
            spec.rank,
            spec.dims,
            spec.permutation,
            element_width,
            stream,
            input_ptr,
            output_ptr,
            alpha,
            beta,
        )

    def execute(
        self,
        handle: PlanHandle,
        input_ptr: int,
        output_ptr: int,
        alpha: Optional[float] = None,
        beta: Optional[float] = None,
    ) -> int:
        return self.cutt.execute(handle, input_ptr, output_ptr, alpha, beta)

    def destroy(self, handle: PlanHandle) -> None:
        self.cutt.destroy(handle)
