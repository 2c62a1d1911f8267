"""
Registry pattern utility.

``new_registry`` returns a dictionary and a decorator registering callables or
classes under a key. It backs the function library of the expression language
and the node dispatch of the interpreter::

    FUNCTIONS, register = new_registry(attribute="name")

    @register("abs")
    def abs_(x):
        return np.abs(x)

    FUNCTIONS["abs"](-1.0)
"""

from typing import Any, Callable, Tuple, TypeVar, Union

T = TypeVar("T")


def new_registry(attribute: Union[str, None] = None) -> Tuple[dict, Callable]:
    """
    Returns an empty dict and a @register decorator.

    :param attribute: Optional attribute name to set on registered objects.
                     The key will be stored as this attribute on the object.
    :return: Tuple of (registry_dict, register_decorator)
    """
    registry: dict = {}

    def register(key: Any) -> Callable[[Callable[..., T]], Callable[..., T]]:
        def decorator(func: Callable[..., T]) -> Callable[..., T]:
            if key in registry:
                raise KeyError("Duplicate registry key: %r" % (key,))
            registry[key] = func
            if attribute:
                setattr(func, attribute, key)
            return func

        return decorator

    return registry, register
