from ._buffer import BufferKind, BufferView, DeviceBuffer, DEVICE_KINDS, HOST_KINDS
from ._engine import PlanHandle, TransposeEngine
from ._errors import CuttError, EngineError, InvalidParameterError, PlanDisposedError
from ._result import ResultCode, describe
from ._stream import Stream, StreamKind, classify_stream, resolve_stream
from ._transpose_spec import Scaling, TransposeSpec

__all__ = [
    "BufferKind",
    "BufferView",
    "DeviceBuffer",
    "DEVICE_KINDS",
    "HOST_KINDS",
    "PlanHandle",
    "TransposeEngine",
    "CuttError",
    "EngineError",
    "InvalidParameterError",
    "PlanDisposedError",
    "ResultCode",
    "describe",
    "Stream",
    "StreamKind",
    "classify_stream",
    "resolve_stream",
    "Scaling",
    "TransposeSpec",
]
