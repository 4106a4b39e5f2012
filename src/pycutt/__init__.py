"""
pycutt: plan lifecycle management for cuTT tensor transposes.

Computes `B[pi(i)] = alpha * A[i] + beta * B[pi(i)]` for dense tensors on a
CUDA stream through the cuTT library, with plans that are typed on first
use (or measured up front), validated on every execution and released
exactly once.
"""

from .domain import (
    BufferKind,
    CuttError,
    DeviceBuffer,
    EngineError,
    InvalidParameterError,
    PlanDisposedError,
    ResultCode,
    Scaling,
    Stream,
    TransposeEngine,
    TransposeSpec,
    describe,
)
from .infrastructure import (
    CuTT,
    PlanState,
    TransposePlan,
    get_default_engine,
    set_default_engine,
)
from .infrastructure.native_cuda.python import CuttEngine, load_cutt_native
from .infrastructure.ops import ReferenceTransposeEngine

__version__ = "1.0.0"

__all__ = [
    "BufferKind",
    "CuttError",
    "DeviceBuffer",
    "EngineError",
    "InvalidParameterError",
    "PlanDisposedError",
    "ResultCode",
    "Scaling",
    "Stream",
    "TransposeEngine",
    "TransposeSpec",
    "describe",
    "CuTT",
    "PlanState",
    "TransposePlan",
    "get_default_engine",
    "set_default_engine",
    "CuttEngine",
    "load_cutt_native",
    "ReferenceTransposeEngine",
]
