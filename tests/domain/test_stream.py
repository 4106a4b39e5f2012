import unittest

from pycutt.domain import (
    InvalidParameterError,
    Stream,
    StreamKind,
    classify_stream,
    resolve_stream,
)


class _ProtocolStream:
    def __init__(self, handle):
        self.handle = handle

    def __cuda_stream__(self):
        return (0, self.handle)


class _HandleIntStream:
    handle_int = 1234


class TestStreamDescriptor(unittest.TestCase):
    def test_default_handle_is_zero(self) -> None:
        self.assertEqual(Stream().handle, 0)
        self.assertTrue(Stream().is_default())

    def test_equality_and_hash(self) -> None:
        self.assertEqual(Stream(5), Stream(5))
        self.assertNotEqual(Stream(5), Stream(6))
        self.assertEqual(len({Stream(5), Stream(5)}), 1)
        self.assertEqual(int(Stream(7)), 7)
        self.assertEqual(repr(Stream(255)), "Stream(0xff)")

    def test_invalid_handles_rejected(self) -> None:
        with self.assertRaises(ValueError):
            Stream(-1)
        with self.assertRaises(ValueError):
            Stream("0")
        with self.assertRaises(ValueError):
            Stream(True)


class TestResolveStream(unittest.TestCase):
    def test_none_is_default_stream(self) -> None:
        self.assertIs(classify_stream(None), StreamKind.DEFAULT)
        self.assertEqual(resolve_stream(None), 0)

    def test_raw_int_handle(self) -> None:
        self.assertIs(classify_stream(0xABC), StreamKind.RAW_HANDLE)
        self.assertEqual(resolve_stream(0xABC), 0xABC)

    def test_stream_descriptor(self) -> None:
        self.assertIs(classify_stream(Stream(42)), StreamKind.DESCRIPTOR)
        self.assertEqual(resolve_stream(Stream(42)), 42)

    def test_cuda_stream_protocol(self) -> None:
        s = _ProtocolStream(0x7F00)
        self.assertIs(classify_stream(s), StreamKind.CUDA_STREAM_PROTOCOL)
        self.assertEqual(resolve_stream(s), 0x7F00)

    def test_pycuda_style_handle_int(self) -> None:
        s = _HandleIntStream()
        self.assertIs(classify_stream(s), StreamKind.HANDLE_INT)
        self.assertEqual(resolve_stream(s), 1234)

    def test_bad_handle_int_rejected(self) -> None:
        class NotAnInt:
            handle_int = "1234"

        class Negative:
            handle_int = -5

        with self.assertRaises(InvalidParameterError):
            resolve_stream(NotAnInt())
        with self.assertRaises(InvalidParameterError):
            resolve_stream(Negative())

    def test_malformed_protocol_result_rejected(self) -> None:
        class Bad:
            def __cuda_stream__(self):
                return "nope"

        with self.assertRaises(InvalidParameterError):
            resolve_stream(Bad())
        with self.assertRaises(InvalidParameterError):
            resolve_stream(_ProtocolStream(-3))

    def test_unrecognised_descriptors_rejected(self) -> None:
        for stream in ("stream", 1.5, True, -1, object()):
            with self.assertRaises(InvalidParameterError) as ctx:
                resolve_stream(stream)
            self.assertEqual(ctx.exception.parameter, "stream")

    def test_error_message_names_the_argument(self) -> None:
        with self.assertRaises(InvalidParameterError) as ctx:
            resolve_stream("s0")
        self.assertIn("Stream argument must be", str(ctx.exception))
        self.assertIn("'s0'", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
