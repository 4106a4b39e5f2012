"""
State-based method dispatch ("control paths") via decorators.

A control path routes one method call to one of several registered
implementations according to the object's runtime `_state` value. pycutt
uses it to express the plan lifecycle as a state machine: each lifecycle
state contributes its own implementation of the same method, with no
`if state == ...` chains in the method bodies.

Core idea
---------
- A class declares a *base* method; its signature is the canonical one.
- Implementations are registered per `(ClassName, MethodName, StateVal)`.
- At call time the installed wrapper reads `self._state` and calls the
  implementation registered for it as `impl(self, *args, **kwargs)`.

Important notes
---------------
- Registering the first control path replaces the base method on the class
  with the dispatching wrapper.
- Registrations live in a mapping private to each `create_path_builder()`
  call; separate builders never share paths.
- A missing path raises `NotImplementedError` unless `trap_exception` says
  otherwise.
"""

from typing import (
    runtime_checkable,
    Callable,
    Hashable,
    Optional,
    Protocol,
    Union,
    Dict,
    Type,
    Any,
)
from typing_extensions import ParamSpec, TypeVar
from collections import namedtuple
from functools import wraps

from abc import abstractmethod

P = ParamSpec("P")
R = TypeVar("R")


def create_path_builder() -> Callable[
    [
        Type,
        Callable[P, R],
        Hashable,
        Optional[Union[Exception, Callable[[Callable[P, R], Any], None]]],
    ],
    Callable[[Callable[P, R]], Callable[P, R]],
]:
    """
    Create a "path builder" used to register stateful control paths.

    Usage:

        control_path = create_path_builder()

        class Plan:
            @property
            def _state(self): ...

            def release(self) -> None: ...

        @control_path(Plan, Plan.release, PlanState.UNRESOLVED)
        def _release_unresolved(self: Plan) -> None:
            ...

        @control_path(Plan, Plan.release, PlanState.RESOLVED)
        def _release_resolved(self: Plan) -> None:
            ...

    Calling `plan.release()` then runs the function registered for
    `plan._state`.

    Returns
    -------
    Callable
        `(cls, method, state, trap_exception=None) -> decorator`.
    """

    MethodKey = namedtuple(
        "MethodKey",
        [
            "ClassName",
            "MethodName",
            "StateVal",
        ],
    )

    methods_map: Dict[MethodKey, Callable] = {}

    @runtime_checkable
    class StatefulObject(Protocol):
        """
        Object taking part in state-based dispatch.

        Implementers provide a `_state` property whose value selects the
        control path.
        """

        @property
        @abstractmethod
        def _state(self) -> Optional[Any]:
            """Current state value used for dispatch selection."""
            ...

    STATE_PROPERTY_NAME = next(
        (
            name
            for name, value in StatefulObject.__dict__.items()
            if value is StatefulObject._state
        )
    )

    def templator(
        cls: Type,
        method: Callable[P, R],
        state: Hashable,
        trap_exception: Optional[
            Union[Exception, Callable[[Callable[P, R], Any], None]]
        ] = None,
    ) -> Callable[[Callable[P, R]], Callable[P, R]]:
        """
        Build a decorator registering a control path implementation.

        Parameters
        ----------
        cls : Type
            Class whose method is replaced by the dispatcher.
        method : Callable[P, R]
            Base method; its metadata is copied onto the dispatcher.
        state : Hashable
            State value selecting the decorated implementation.
        trap_exception : optional
            What to do when no path matches the current state:

            - None: raise `NotImplementedError`.
            - an exception class: raise `trap_exception()`.
            - another callable: raise the exception returned by
              `trap_exception(method, state)`.

        Raises
        ------
        TypeError
            If `state` is not hashable.
        """
        try:
            hash(state)
        except TypeError:
            raise TypeError(
                f"The argument for 'state' must be hashable. Got {repr(state)}"
            ) from None

        smk: MethodKey = MethodKey(cls.__name__, method.__name__, state)

        def _get_cur_smk(self: StatefulObject) -> MethodKey:
            return MethodKey(cls.__name__, method.__name__, self._state)

        def decorator(sub_method: Callable[P, R]) -> Callable[P, R]:
            methods_map[smk] = sub_method

            @wraps(method)
            def wrapper(self: Any, *args: P.args, **kwargs: P.kwargs) -> Any:
                if not isinstance(self, StatefulObject):
                    raise NotImplementedError(
                        "{} is missing attribute {} (@property)".format(
                            type(self), repr(STATE_PROPERTY_NAME)
                        )
                    )
                if sm := methods_map.get(_get_cur_smk(self)):
                    return sm(self, *args, **kwargs)
                if not trap_exception:
                    raise NotImplementedError(
                        "Missing control path (state={}) for {}".format(
                            repr(self._state), repr(method)
                        )
                    )
                if isinstance(trap_exception, type):
                    raise trap_exception()
                raise trap_exception(method, self._state)

            setattr(cls, method.__name__, wrapper)
            return sub_method

        return decorator

    return templator
