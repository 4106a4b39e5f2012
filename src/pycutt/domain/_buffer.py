"""
Buffer descriptors and capability tags.

The set of buffer kinds pycutt accepts is closed and explicit. Every buffer
handed to a plan is classified into exactly one `BufferKind`; anything else
is rejected. Each transpose engine declares which kinds it can consume:
the native cuTT engine works on device memory, the NumPy reference engine
on host memory.

- `BufferKind`: enumeration of the recognised buffer kinds
- `DeviceBuffer`: descriptor for device memory owned elsewhere
- `BufferView`: the facts extracted from a validated buffer
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple

import numpy as np


class BufferKind(Enum):
    """
    Enumeration of recognised buffer kinds.

    Attributes
    ----------
    DEVICE_BUFFER : BufferKind
        A `pycutt.DeviceBuffer` descriptor.
    CUDA_ARRAY : BufferKind
        An object exposing `__cuda_array_interface__` (CuPy, PyCUDA,
        Numba, PyTorch, ...).
    HOST_ARRAY : BufferKind
        A NumPy `ndarray` in host memory.
    """

    DEVICE_BUFFER = "device_buffer"
    CUDA_ARRAY = "cuda_array"
    HOST_ARRAY = "host_array"

    def is_device(self) -> bool:
        """True for kinds that live in accelerator memory."""
        return self is not BufferKind.HOST_ARRAY


DEVICE_KINDS = frozenset({BufferKind.DEVICE_BUFFER, BufferKind.CUDA_ARRAY})
HOST_KINDS = frozenset({BufferKind.HOST_ARRAY})


class DeviceBuffer:
    """
    Descriptor of a contiguous device allocation owned by someone else.

    pycutt never allocates or frees device memory. `DeviceBuffer` lets
    callers that manage raw allocations themselves (e.g. through the CUDA
    runtime) hand a pointer together with its element type to a plan.

    Parameters
    ----------
    ptr : int
        Device address of the first element. Must be non-zero.
    dtype : numpy dtype-like
        Element type of the buffer.
    size : int
        Number of elements.
    readonly : bool, optional
        Marks the buffer as input-only. Default False.

    Raises
    ------
    ValueError
        If `ptr` is zero or negative, or `size` is negative.
    """

    __slots__ = ("ptr", "dtype", "size", "readonly")

    def __init__(self, ptr: int, dtype, size: int, readonly: bool = False):
        ptr = int(ptr)
        size = int(size)
        if ptr <= 0:
            raise ValueError(f"DeviceBuffer pointer must be non-zero, got: {ptr}")
        if size < 0:
            raise ValueError(f"DeviceBuffer size must be non-negative, got: {size}")
        self.ptr = ptr
        self.dtype = np.dtype(dtype)
        self.size = size
        self.readonly = bool(readonly)

    @property
    def itemsize(self) -> int:
        return int(self.dtype.itemsize)

    @property
    def nbytes(self) -> int:
        return self.size * self.itemsize

    def __repr__(self) -> str:
        return (
            f"DeviceBuffer(ptr=0x{self.ptr:x}, dtype={self.dtype}, "
            f"size={self.size}{', readonly' if self.readonly else ''})"
        )


@dataclass(frozen=True)
class BufferView:
    """
    Facts extracted from a validated buffer.

    Attributes
    ----------
    kind : BufferKind
        Classification of the source buffer.
    ptr : int
        Raw address of the first element.
    dtype : np.dtype
        Element type.
    shape : Tuple[int, ...]
        Shape reported by the buffer (a 1-D length for `DeviceBuffer`).
    readonly : bool
        Whether the buffer may not be written.
    """

    kind: BufferKind
    ptr: int
    dtype: np.dtype
    shape: Tuple[int, ...]
    readonly: bool = False

    @property
    def itemsize(self) -> int:
        return int(self.dtype.itemsize)

    @property
    def size(self) -> int:
        n = 1
        for d in self.shape:
            n *= int(d)
        return n

    @property
    def nbytes(self) -> int:
        return self.size * self.itemsize
