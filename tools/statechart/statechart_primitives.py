"""
Statechart Annotation Primitives

Identity wrappers that mark transition members of a state class with
declarative metadata. At run time they return the wrapped implementation
unchanged; extract_statechart.py reads the call sites statically.

Each primitive works as a nested call or as a decorator:

    class RedLight:
        next = describe("Go green", transition_to(GreenLight, lambda self: GreenLight()))

        @guarded({"name": "isRushHour"})
        @transition_to(YellowLight)
        def hurry(self):
            return YellowLight()
"""

from typing import Any, Callable, Dict, Optional, Union


def _wrap(implementation: Optional[Callable]):
    # Decorator form: primitive(meta) returns the identity decorator
    if implementation is None:
        return lambda fn: fn
    return implementation


def transition_to(target: Any, implementation: Optional[Callable] = None):
    """
    Declare the target state class of a transition.

    Args:
        target: State class (or "Name" / lambda: Name forward reference)
        implementation: Function returning the new state instance
    """
    return _wrap(implementation)


def describe(text: str, transition: Optional[Callable] = None):
    """Attach a human-readable description to a transition"""
    return _wrap(transition)


def guarded(guard: Union[Dict[str, str], str], transition: Optional[Callable] = None):
    """
    Attach a guard condition to a transition.

    Only metadata: the implementation must still perform the check itself.
    Stacked guards compose as a logical AND.
    """
    return _wrap(transition)


def invoke(service: Dict[str, Any], implementation: Optional[Callable] = None):
    """
    Declare an invoked (asynchronous) service.

    Args:
        service: {"src": name, "onDone": StateClass, "onError": StateClass,
                  "description": optional text}
        implementation: The service implementation
    """
    return _wrap(implementation)


def action(action: Union[Dict[str, str], str], transition: Optional[Callable] = None):
    """Attach a fire-and-forget side-effect label to a transition"""
    return _wrap(transition)
