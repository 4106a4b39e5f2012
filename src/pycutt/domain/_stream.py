"""
Stream descriptors.

This module defines the stream side of a transpose request:

- `StreamKind`: the closed set of stream descriptors pycutt recognises
- `Stream`: a lightweight descriptor wrapping a raw `cudaStream_t` value
- `resolve_stream`: classification plus conversion to the raw handle passed
  to the native engine

Recognised descriptors
----------------------
- `None`: the default (legacy, synchronous) stream, handle 0.
- A non-negative `int`: a raw stream handle obtained from the CUDA runtime.
- `Stream`: the descriptor defined here.
- Any object implementing the CUDA stream protocol, i.e. a
  `__cuda_stream__()` method returning `(version, handle)`. CuPy, PyTorch
  and cuda-python streams expose it.
- Any object with an integer `handle_int` attribute, such as
  `pycuda.driver.Stream`.

Stream objects are never created or destroyed here; they belong to the
caller's runtime.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from ._errors import InvalidParameterError


class StreamKind(Enum):
    """
    Enumeration of the stream descriptors accepted by pycutt.

    Attributes
    ----------
    DEFAULT : StreamKind
        `None`; the legacy default stream.
    RAW_HANDLE : StreamKind
        A plain integer stream handle.
    DESCRIPTOR : StreamKind
        A `pycutt.Stream` instance.
    CUDA_STREAM_PROTOCOL : StreamKind
        An object exposing `__cuda_stream__()`.
    HANDLE_INT : StreamKind
        An object with an integer `handle_int` attribute (PyCUDA).
    """

    DEFAULT = "default"
    RAW_HANDLE = "raw_handle"
    DESCRIPTOR = "descriptor"
    CUDA_STREAM_PROTOCOL = "cuda_stream_protocol"
    HANDLE_INT = "handle_int"


class Stream:
    """
    Concrete stream descriptor.

    Parameters
    ----------
    handle : int
        Raw `cudaStream_t` value. 0 denotes the legacy default stream.

    Raises
    ------
    ValueError
        If `handle` is negative or not an integer.

    Notes
    -----
    `__slots__` keeps the descriptor immutable in practice and cheap to copy.
    """

    __slots__ = ("handle",)

    def __init__(self, handle: int = 0):
        if isinstance(handle, bool) or not isinstance(handle, int):
            raise ValueError(f"Stream handle must be an int, got: {handle!r}")
        if handle < 0:
            raise ValueError(f"Stream handle must be non-negative, got: {handle}")
        self.handle = handle

    def __repr__(self) -> str:
        return f"Stream(0x{self.handle:x})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Stream):
            return NotImplemented
        return self.handle == other.handle

    def __hash__(self) -> int:
        return hash(("Stream", self.handle))

    def __int__(self) -> int:
        return self.handle

    def is_default(self) -> bool:
        """True for the legacy default stream."""
        return self.handle == 0


def classify_stream(stream: Any) -> StreamKind:
    """
    Determine which recognised descriptor kind `stream` is.

    Raises
    ------
    InvalidParameterError
        If `stream` matches none of the recognised kinds.
    """
    if stream is None:
        return StreamKind.DEFAULT
    if isinstance(stream, Stream):
        return StreamKind.DESCRIPTOR
    if isinstance(stream, int) and not isinstance(stream, bool):
        if stream < 0:
            raise InvalidParameterError(
                f"Stream handle must be non-negative, got: {stream}", "stream"
            )
        return StreamKind.RAW_HANDLE
    if callable(getattr(type(stream), "__cuda_stream__", None)):
        return StreamKind.CUDA_STREAM_PROTOCOL
    handle_int = getattr(stream, "handle_int", None)
    if isinstance(handle_int, int) and not isinstance(handle_int, bool):
        return StreamKind.HANDLE_INT
    raise InvalidParameterError(
        "Stream argument must be None, an int handle, a pycutt.Stream or an "
        "object implementing __cuda_stream__ or exposing handle_int, "
        f"got: {stream!r}",
        "stream",
    )


def resolve_stream(stream: Any) -> int:
    """
    Convert a stream descriptor into the raw handle passed to the engine.

    Parameters
    ----------
    stream : Any
        One of the descriptors listed in the module docstring.

    Returns
    -------
    int
        Raw `cudaStream_t` value (0 for the default stream).

    Raises
    ------
    InvalidParameterError
        If the descriptor is not recognised or reports a malformed handle.
    """
    kind = classify_stream(stream)
    if kind is StreamKind.DEFAULT:
        return 0
    if kind is StreamKind.DESCRIPTOR:
        return stream.handle
    if kind is StreamKind.RAW_HANDLE:
        return int(stream)

    if kind is StreamKind.HANDLE_INT:
        handle = int(stream.handle_int)
    else:
        reported = stream.__cuda_stream__()
        try:
            _version, handle = reported
            handle = int(handle)
        except (TypeError, ValueError):
            raise InvalidParameterError(
                f"__cuda_stream__ must return (version, handle), got: {reported!r}",
                "stream",
            ) from None
    if handle < 0:
        raise InvalidParameterError(
            f"Stream handle must be non-negative, got: {handle}", "stream"
        )
    return handle
