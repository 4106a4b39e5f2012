"""
Buffer validation for transpose plans.

Every buffer presented to a plan goes through this module before the engine
sees it. Validation is a pattern match over the closed set of
`BufferKind`s:

- `DeviceBuffer` descriptors            -> `BufferKind.DEVICE_BUFFER`
- NumPy `ndarray`                       -> `BufferKind.HOST_ARRAY`
- objects with `__cuda_array_interface__` -> `BufferKind.CUDA_ARRAY`

Anything else is rejected with `InvalidParameterError`. A recognised kind
must additionally be one the engine accepts, be contiguous (C or Fortran
order) and, for outputs, be writable.

Transposition never casts between element types: input and output must
report identical dtypes.

`raw_pointer` and `element_width` are pure extractions from a `BufferView`
and are only meaningful after `validate` has succeeded.
"""

from __future__ import annotations

from typing import Any, Iterable, Tuple

import numpy as np

from ..domain._buffer import BufferKind, BufferView, DeviceBuffer
from ..domain._errors import InvalidParameterError

_KIND_LABELS = {
    BufferKind.DEVICE_BUFFER: "a pycutt.DeviceBuffer",
    BufferKind.CUDA_ARRAY: "a device array exposing __cuda_array_interface__",
    BufferKind.HOST_ARRAY: "a numpy.ndarray",
}


def _describe_kinds(kinds: Iterable[BufferKind]) -> str:
    labels = [_KIND_LABELS[k] for k in BufferKind if k in set(kinds)]
    if not labels:
        return "nothing"
    if len(labels) == 1:
        return labels[0]
    return ", ".join(labels[:-1]) + " or " + labels[-1]


def _has_cuda_array_interface(buffer: Any) -> bool:
    # CPU tensors of some libraries raise from the property instead of
    # lacking it; hasattr treats that as absent.
    return hasattr(buffer, "__cuda_array_interface__")


def classify(buffer: Any, name: str = "buffer") -> BufferKind:
    """
    Determine the `BufferKind` of a caller-supplied buffer.

    Raises
    ------
    InvalidParameterError
        If the buffer matches none of the recognised kinds.
    """
    if isinstance(buffer, DeviceBuffer):
        return BufferKind.DEVICE_BUFFER
    if isinstance(buffer, np.ndarray):
        return BufferKind.HOST_ARRAY
    if _has_cuda_array_interface(buffer):
        return BufferKind.CUDA_ARRAY
    raise InvalidParameterError(
        f"{name} must be {_describe_kinds(BufferKind)}, got: {buffer!r}", name
    )


def _is_contiguous(shape: Tuple[int, ...], strides, itemsize: int) -> bool:
    if strides is None:
        return True

    def _expected(dims: Iterable[int]) -> Tuple[int, ...]:
        out = []
        step = itemsize
        for d in dims:
            out.append(step)
            step *= int(d)
        return tuple(out)

    strides = tuple(int(s) for s in strides)
    c_order = tuple(reversed(_expected(reversed(shape))))
    f_order = _expected(shape)
    # extents of 1 may carry arbitrary strides
    relevant = [i for i, d in enumerate(shape) if int(d) != 1]
    return all(strides[i] == c_order[i] for i in relevant) or all(
        strides[i] == f_order[i] for i in relevant
    )


def _view_device_buffer(buffer: DeviceBuffer) -> BufferView:
    return BufferView(
        kind=BufferKind.DEVICE_BUFFER,
        ptr=buffer.ptr,
        dtype=buffer.dtype,
        shape=(buffer.size,),
        readonly=buffer.readonly,
    )


def _view_host_array(buffer: np.ndarray, name: str) -> BufferView:
    if not (buffer.flags["C_CONTIGUOUS"] or buffer.flags["F_CONTIGUOUS"]):
        raise InvalidParameterError(f"{name} must be contiguous", name)
    ptr, readonly = buffer.__array_interface__["data"]
    return BufferView(
        kind=BufferKind.HOST_ARRAY,
        ptr=int(ptr or 0),
        dtype=buffer.dtype,
        shape=tuple(int(d) for d in buffer.shape),
        readonly=bool(readonly) or not buffer.flags["WRITEABLE"],
    )


def _view_cuda_array(buffer: Any, name: str) -> BufferView:
    cai = buffer.__cuda_array_interface__
    try:
        ptr, readonly = cai["data"]
        dtype = np.dtype(cai["typestr"])
        shape = tuple(int(d) for d in cai["shape"])
        strides = cai.get("strides")
        if strides is not None:
            strides = tuple(int(s) for s in strides)
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidParameterError(
            f"{name} has a malformed __cuda_array_interface__: {e}", name
        ) from None
    if strides is not None and len(strides) != len(shape):
        raise InvalidParameterError(
            f"{name} has a malformed __cuda_array_interface__: "
            f"{len(strides)} strides for {len(shape)} dimensions",
            name,
        )
    if not _is_contiguous(shape, strides, int(dtype.itemsize)):
        raise InvalidParameterError(f"{name} must be contiguous", name)
    return BufferView(
        kind=BufferKind.CUDA_ARRAY,
        ptr=int(ptr or 0),
        dtype=dtype,
        shape=shape,
        readonly=bool(readonly),
    )


def validate(
    buffer: Any,
    accepted_kinds: Iterable[BufferKind],
    name: str = "buffer",
    *,
    writable: bool = False,
) -> BufferView:
    """
    Check a buffer against the kinds an engine accepts and extract its view.

    Parameters
    ----------
    buffer : Any
        Caller-supplied buffer.
    accepted_kinds : Iterable[BufferKind]
        Kinds the consuming engine can work with.
    name : str
        Label used in error messages ("Input array", "Output array").
    writable : bool
        Require the buffer to be writable (outputs).

    Returns
    -------
    BufferView
        Pointer, dtype and shape of the buffer.

    Raises
    ------
    InvalidParameterError
        If the buffer kind is unknown or not accepted, if it is not
        contiguous, or if `writable` is set and the buffer is read-only.
    """
    accepted = frozenset(accepted_kinds)
    kind = classify(buffer, name)
    if kind not in accepted:
        raise InvalidParameterError(
            f"{name} must be {_describe_kinds(accepted)}, got: {buffer!r}", name
        )

    if kind is BufferKind.DEVICE_BUFFER:
        view = _view_device_buffer(buffer)
    elif kind is BufferKind.HOST_ARRAY:
        view = _view_host_array(buffer, name)
    else:
        view = _view_cuda_array(buffer, name)

    if writable and view.readonly:
        raise InvalidParameterError(f"{name} must be writable", name)
    return view


def same_element_type(a: BufferView, b: BufferView) -> None:
    """
    Require two validated buffers to share one element type.

    Raises
    ------
    InvalidParameterError
        If the dtypes differ.
    """
    if a.dtype != b.dtype:
        raise InvalidParameterError(
            "Input and output array must have the same type, got: "
            f"{a.dtype} and {b.dtype}",
            "odata",
        )


def raw_pointer(view: BufferView) -> int:
    """Address of the first element of a validated buffer."""
    return view.ptr


def element_width(view: BufferView) -> int:
    """Element size in bytes of a validated buffer."""
    return view.itemsize
