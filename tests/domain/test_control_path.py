import unittest

from pycutt.domain.utils import create_path_builder


class TestCreatePathBuilder(unittest.TestCase):
    def setUp(self) -> None:
        # Fresh builder per test to avoid map-sharing across tests.
        self.decorator = create_path_builder()

    def test_state_must_be_hashable(self) -> None:
        class C:
            @property
            def _state(self):
                return "A"

            def foo(self, x: int) -> int:
                return x

        with self.assertRaises(TypeError) as ctx:
            # list is unhashable
            self.decorator(C, C.foo, state=["not-hashable"])(lambda self, x: x)

        self.assertIn("must be hashable", str(ctx.exception))

    def test_dispatch_selects_registered_control_path(self) -> None:
        class C:
            def __init__(self, st):
                self.__st = st
                self.offset = 1

            @property
            def _state(self):
                return self.__st

            def foo(self, x: int) -> int:
                return -999

        @self.decorator(C, C.foo, state="A")
        def foo_A(self, x: int) -> int:
            return x + 10 + self.offset

        @self.decorator(C, C.foo, state="B")
        def foo_B(self, x: int) -> int:
            return x + 20 + self.offset

        self.assertEqual(C("A").foo(1), 12)
        self.assertEqual(C("B").foo(1), 22)

    def test_path_follows_state_changes(self) -> None:
        class C:
            def __init__(self):
                self.st = "A"

            @property
            def _state(self):
                return self.st

            def step(self) -> str:
                return ""

        @self.decorator(C, C.step, state="A")
        def step_A(self) -> str:
            self.st = "B"
            return "a"

        @self.decorator(C, C.step, state="B")
        def step_B(self) -> str:
            return "b"

        c = C()
        self.assertEqual([c.step(), c.step(), c.step()], ["a", "b", "b"])

    def test_dispatch_supports_enum_state(self) -> None:
        from enum import Enum

        class S(Enum):
            ON = 1

        class C:
            @property
            def _state(self):
                return S.ON

            def foo(self, x: int) -> int:
                return -999

        @self.decorator(C, C.foo, state=S.ON)
        def foo_on(self, x: int) -> int:
            return x * 2

        self.assertEqual(C().foo(3), 6)

    def test_missing_state_property_raises_not_implemented(self) -> None:
        class C:
            def foo(self, x: int) -> int:
                return x

        @self.decorator(C, C.foo, state="A")
        def foo_A(self, x: int) -> int:
            return x + 1

        with self.assertRaises(NotImplementedError) as ctx:
            C().foo(1)

        self.assertIn("missing attribute", str(ctx.exception))
        self.assertIn("'_state'", str(ctx.exception))

    def test_missing_control_path_without_trap_exception_raises_not_implemented(
        self,
    ) -> None:
        class C:
            def __init__(self, st):
                self.__st = st

            @property
            def _state(self):
                return self.__st

            def foo(self, x: int) -> int:
                return x

        @self.decorator(C, C.foo, state="A")
        def foo_A(self, x: int) -> int:
            return x + 1

        with self.assertRaises(NotImplementedError) as ctx:
            C("B").foo(1)

        self.assertIn("Missing control path", str(ctx.exception))
        self.assertIn("state='B'", str(ctx.exception))

    def test_trap_exception_as_exception_class_raises_that_exception(self) -> None:
        class MissingPathError(Exception):
            pass

        class C:
            def __init__(self, st):
                self.__st = st

            @property
            def _state(self):
                return self.__st

            def foo(self, x: int) -> int:
                return x

        @self.decorator(C, C.foo, state="A", trap_exception=MissingPathError)
        def foo_A(self, x: int) -> int:
            return x + 1

        with self.assertRaises(MissingPathError):
            C("B").foo(1)

    def test_trap_exception_factory_receives_method_and_state(self) -> None:
        seen = {}

        def trap(method, state):
            seen["method"] = method.__name__
            seen["state"] = state
            return LookupError(f"no path for {state}")

        class C:
            def __init__(self, st):
                self.__st = st

            @property
            def _state(self):
                return self.__st

            def foo(self, x: int) -> int:
                return x

        @self.decorator(C, C.foo, state="A", trap_exception=trap)
        def foo_A(self, x: int) -> int:
            return x + 1

        with self.assertRaises(LookupError) as ctx:
            C("B").foo(123)

        self.assertEqual(seen, {"method": "foo", "state": "B"})
        self.assertIn("no path for B", str(ctx.exception))

    def test_wrapper_preserves_original_method_metadata(self) -> None:
        class C:
            @property
            def _state(self):
                return "A"

            def foo(self, x: int) -> int:
                """Original foo docstring."""
                return x

        @self.decorator(C, C.foo, state="A")
        def foo_A(self, x: int) -> int:
            return x + 1

        self.assertEqual(C.foo.__name__, "foo")
        self.assertEqual(C.foo.__doc__, "Original foo docstring.")

    def test_two_builders_do_not_share_control_paths(self) -> None:
        deco1 = create_path_builder()
        deco2 = create_path_builder()

        class C:
            def __init__(self, st):
                self.__st = st

            @property
            def _state(self):
                return self.__st

            def foo(self, x: int) -> int:
                return -999

        @deco1(C, C.foo, state="A")
        def foo_A_1(self, x: int) -> int:
            return 111

        @deco2(C, C.foo, state="B")
        def foo_B_2(self, x: int) -> int:
            return 222

        # the class now dispatches through deco2's map only
        with self.assertRaises(NotImplementedError):
            C("A").foo(0)

        self.assertEqual(C("B").foo(0), 222)


if __name__ == "__main__":
    unittest.main()
