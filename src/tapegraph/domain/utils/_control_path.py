"""
State-based method dispatch (a.k.a. "control-path" templating) via decorators.

This module provides a small mechanism for routing a single method call to
one of several registered implementations based on an object's runtime
state value.

Core idea
---------
- You define a *base* method on a class (its signature becomes the canonical one).
- You then register multiple "control paths" for that method, each keyed by:
    (ClassName, MethodName, StateVal)
- At runtime, the wrapper reads the object's state attribute and dispatches
  to the registered implementation that matches it.

Intended use-cases
------------------
- Implementing state machines where behavior changes by state without large
  if/elif chains (the tape machine lifecycle is built this way).
- Keeping per-state behaviors isolated as separate functions for readability.

Important notes
---------------
- This design mutates the class: the first time you decorate a control path,
  the original method name is replaced with a wrapper that performs dispatch.
- Registered implementations are stored in a closure-local mapping owned by
  `create_path_builder()`. Different builders do not share mappings.
- Sub-methods are called like bound instance methods: `sub_method(self, ...)`.
"""

from typing import (
    Callable,
    Hashable,
    Optional,
    Dict,
    Type,
    Any,
)
from typing_extensions import ParamSpec, TypeVar
from collections import namedtuple
from functools import wraps

P = ParamSpec("P")
R = TypeVar("R")

TrapFactory = Callable[[Callable[..., Any], Any], BaseException]


def create_path_builder(
    state_attribute: str = "_state",
) -> Callable[
    [Type, Callable[P, R], Hashable, Optional[TrapFactory]],
    Callable[[Callable[P, R]], Callable[P, R]],
]:
    """
    Create and return a "path builder" function used to register stateful
    control paths for methods.

    The returned function (`templator`) is used like this:

        path = create_path_builder("state")

        class Machine:
            state = "A"
            def step(self, x: int) -> int: ...

        @path(Machine, Machine.step, "A")
        def step_a(self, x: int) -> int:
            ...

        @path(Machine, Machine.step, "B")
        def step_b(self, x: int) -> int:
            ...

    When `Machine.step(...)` is called, it dispatches to `step_a` or `step_b`
    depending on `self.state`.

    Parameters
    ----------
    state_attribute : str, optional
        Name of the attribute (or property) read from the instance to select a
        control path. Defaults to ``"_state"``.

    Returns
    -------
    Callable
        A function with signature:

            (cls, method, state, trap_exception=None) -> decorator

        where `decorator(sub_method)` registers `sub_method` for that control
        path and replaces `cls.method` with a dispatcher wrapper.
    """

    MethodKey = namedtuple(
        "MethodKey",
        [
            "ClassName",
            "MethodName",
            "StateVal",
        ],
    )
    """
    Tuple-like key used to uniquely identify a control path.

    Fields
    ------
    ClassName : str
        The owning class name.
    MethodName : str
        The base method name being templated.
    StateVal : Hashable
        The state value that selects this implementation.
    """

    methods_map: Dict[MethodKey, Callable] = {}
    """Mapping from (class, method, state) keys to registered implementations."""

    traps: Dict[tuple, TrapFactory] = {}
    """Per (class, method) factory for the error raised on a missing path."""

    def templator(
        cls: Type,
        method: Callable[P, R],
        state: Hashable,
        trap_exception: Optional[TrapFactory] = None,
    ) -> Callable[[Callable[P, R]], Callable[P, R]]:
        """
        Build a decorator that registers a control path implementation.

        Parameters
        ----------
        cls : Type
            The class whose method should be wrapped for state-based dispatch.
            The wrapper is installed on this class under `method.__name__`.
        method : Callable[P, R]
            The base method being templated. Its signature and metadata (name,
            docstring, annotations) are used for the installed wrapper via
            `functools.wraps(method)`.
        state : Hashable
            The state value that selects the decorated implementation.
        trap_exception : Optional[TrapFactory]
            Factory ``(method, state) -> exception`` used when no control path
            matches the current state. Once given for a (class, method) pair
            it applies to every later registration of that pair. If no
            factory was ever given, `NotImplementedError` is raised.

        Returns
        -------
        Callable[[Callable[P, R]], Callable[P, R]]
            A decorator that registers `sub_method` for `(cls, method, state)`
            and installs/updates the dispatcher wrapper.

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
            )

        # The installed wrapper carries the original method; unwrap so that
        # every registration keys on the base method name.
        base = getattr(method, "__wrapped__", method)
        smk: MethodKey = MethodKey(cls.__name__, base.__name__, state)
        if trap_exception is not None:
            traps[(cls.__name__, base.__name__)] = trap_exception

        def decorator(sub_method: Callable[P, R]) -> Callable[P, R]:
            """
            Register `sub_method` as the implementation for the configured state.
            """
            methods_map[smk] = sub_method

            @wraps(base)
            def wrapper(self: Any, *args: P.args, **kwargs: P.kwargs) -> Any:
                """
                Dispatch to a registered implementation based on the state
                attribute of `self`.
                """
                if not hasattr(self, state_attribute):
                    raise NotImplementedError(
                        "{} is missing attribute {}".format(
                            type(self), repr(state_attribute)
                        )
                    )
                cur = getattr(self, state_attribute)
                key = MethodKey(cls.__name__, base.__name__, cur)
                if sm := methods_map.get(key):
                    return sm(self, *args, **kwargs)
                trap = traps.get((cls.__name__, base.__name__))
                if trap is None:
                    raise NotImplementedError(
                        "Missing control path (state={}) for {}".format(
                            repr(cur), repr(base)
                        )
                    )
                raise trap(base, cur)

            setattr(cls, base.__name__, wrapper)
            return sub_method

        return decorator

    return templator
