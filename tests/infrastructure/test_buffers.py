import unittest

import numpy as np

from pycutt.domain import (
    BufferKind,
    DEVICE_KINDS,
    HOST_KINDS,
    DeviceBuffer,
    InvalidParameterError,
)
from pycutt.infrastructure import (
    classify,
    element_width,
    raw_pointer,
    same_element_type,
    validate,
)


class _FakeDeviceArray:
    """Minimal object exposing the CUDA array interface."""

    def __init__(self, ptr, shape, typestr="<f4", strides=None, readonly=False):
        self.__cuda_array_interface__ = {
            "data": (ptr, readonly),
            "shape": shape,
            "typestr": typestr,
            "strides": strides,
            "version": 3,
        }


class TestClassify(unittest.TestCase):
    def test_recognised_kinds(self) -> None:
        self.assertIs(
            classify(DeviceBuffer(0x1000, np.float32, 4)), BufferKind.DEVICE_BUFFER
        )
        self.assertIs(classify(np.zeros(3)), BufferKind.HOST_ARRAY)
        self.assertIs(classify(_FakeDeviceArray(0x2000, (3,))), BufferKind.CUDA_ARRAY)

    def test_unknown_kind_rejected(self) -> None:
        for buffer in ([1.0, 2.0], b"\x00" * 8, 1234, None):
            with self.assertRaises(InvalidParameterError) as ctx:
                classify(buffer, "Input array")
            self.assertIn("Input array must be", str(ctx.exception))


class TestValidate(unittest.TestCase):
    def test_device_buffer_view(self) -> None:
        view = validate(DeviceBuffer(0x1000, np.float64, 24), DEVICE_KINDS)
        self.assertEqual(view.ptr, 0x1000)
        self.assertEqual(view.size, 24)
        self.assertEqual(raw_pointer(view), 0x1000)
        self.assertEqual(element_width(view), 8)

    def test_host_array_view(self) -> None:
        a = np.arange(12, dtype=np.int16).reshape(3, 4)
        view = validate(a, HOST_KINDS)
        self.assertIs(view.kind, BufferKind.HOST_ARRAY)
        self.assertEqual(view.ptr, a.__array_interface__["data"][0])
        self.assertEqual(view.shape, (3, 4))
        self.assertEqual(element_width(view), 2)

    def test_cuda_array_view(self) -> None:
        view = validate(_FakeDeviceArray(0x3000, (4, 6), "<f8"), DEVICE_KINDS)
        self.assertIs(view.kind, BufferKind.CUDA_ARRAY)
        self.assertEqual(view.ptr, 0x3000)
        self.assertEqual(view.dtype, np.dtype(np.float64))
        self.assertEqual(view.size, 24)

    def test_kind_not_accepted_by_engine(self) -> None:
        with self.assertRaises(InvalidParameterError) as ctx:
            validate(np.zeros(4, dtype=np.float32), DEVICE_KINDS, "Input array")
        self.assertIn("__cuda_array_interface__", str(ctx.exception))

        with self.assertRaises(InvalidParameterError) as ctx:
            validate(DeviceBuffer(0x1000, np.float32, 4), HOST_KINDS, "Output array")
        self.assertIn("numpy.ndarray", str(ctx.exception))

    def test_non_contiguous_host_array_rejected(self) -> None:
        a = np.zeros((4, 6), dtype=np.float32)[:, ::2]
        with self.assertRaises(InvalidParameterError) as ctx:
            validate(a, HOST_KINDS, "Input array")
        self.assertIn("contiguous", str(ctx.exception))

    def test_fortran_ordered_host_array_accepted(self) -> None:
        a = np.asfortranarray(np.zeros((4, 6), dtype=np.float32))
        self.assertEqual(validate(a, HOST_KINDS).size, 24)

    def test_cuda_array_strides(self) -> None:
        c_order = _FakeDeviceArray(0x3000, (4, 6), "<f4", strides=(24, 4))
        f_order = _FakeDeviceArray(0x3000, (4, 6), "<f4", strides=(4, 16))
        strided = _FakeDeviceArray(0x3000, (4, 6), "<f4", strides=(48, 8))
        self.assertEqual(validate(c_order, DEVICE_KINDS).size, 24)
        self.assertEqual(validate(f_order, DEVICE_KINDS).size, 24)
        with self.assertRaises(InvalidParameterError):
            validate(strided, DEVICE_KINDS)

    def test_strides_rank_mismatch_rejected(self) -> None:
        short = _FakeDeviceArray(0x3000, (4, 6), "<f4", strides=(4,))
        with self.assertRaises(InvalidParameterError) as ctx:
            validate(short, DEVICE_KINDS, "Input array")
        self.assertIn("1 strides for 2 dimensions", str(ctx.exception))

        not_a_sequence = _FakeDeviceArray(0x3000, (4, 6), "<f4", strides=4)
        with self.assertRaises(InvalidParameterError):
            validate(not_a_sequence, DEVICE_KINDS, "Input array")

    def test_malformed_cuda_array_interface(self) -> None:
        class Broken:
            __cuda_array_interface__ = {"shape": (3,)}

        with self.assertRaises(InvalidParameterError) as ctx:
            validate(Broken(), DEVICE_KINDS, "Input array")
        self.assertIn("malformed", str(ctx.exception))

    def test_readonly_output_rejected(self) -> None:
        a = np.zeros(4, dtype=np.float32)
        a.setflags(write=False)
        validate(a, HOST_KINDS, "Input array")
        with self.assertRaises(InvalidParameterError) as ctx:
            validate(a, HOST_KINDS, "Output array", writable=True)
        self.assertEqual(str(ctx.exception), "Output array must be writable")

        ro = DeviceBuffer(0x1000, np.float32, 4, readonly=True)
        with self.assertRaises(InvalidParameterError):
            validate(ro, DEVICE_KINDS, "Output array", writable=True)


class TestSameElementType(unittest.TestCase):
    def test_equal_dtypes_pass(self) -> None:
        a = validate(np.zeros(3, dtype=np.float32), HOST_KINDS)
        b = validate(np.zeros(3, dtype=np.float32), HOST_KINDS)
        same_element_type(a, b)

    def test_mismatch_message_names_both_types(self) -> None:
        a = validate(np.zeros(3, dtype=np.float32), HOST_KINDS)
        b = validate(np.zeros(3, dtype=np.float64), HOST_KINDS)
        with self.assertRaises(InvalidParameterError) as ctx:
            same_element_type(a, b)
        self.assertEqual(
            str(ctx.exception),
            "Input and output array must have the same type, got: float32 and float64",
        )

    def test_same_width_different_type_rejected(self) -> None:
        a = validate(np.zeros(3, dtype=np.float32), HOST_KINDS)
        b = validate(np.zeros(3, dtype=np.int32), HOST_KINDS)
        with self.assertRaises(InvalidParameterError):
            same_element_type(a, b)


if __name__ == "__main__":
    unittest.main()
