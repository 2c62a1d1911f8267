"""
Safe function library available inside formulas.

Every function is pure and operates elementwise on floats and numpy arrays.
Domain errors (``sqrt(-1)``, ``log(0)``) produce non-finite values rather
than exceptions; the engine later normalises them to 0.

The public mapping :py:data:`FUNCTIONS` is read-only.
"""

import functools
from types import MappingProxyType

import numpy as np

from formula_blend.registry import new_registry

_FUNCTIONS, register = new_registry(attribute="name")


@register("abs")
def abs_(x):
    return np.abs(x)


@register("min")
def min_(*values):
    if not values:
        return np.float64(np.inf)
    return functools.reduce(np.minimum, values)


@register("max")
def max_(*values):
    if not values:
        return np.float64(-np.inf)
    return functools.reduce(np.maximum, values)


@register("floor")
def floor(x):
    return np.floor(x)


@register("ceil")
def ceil(x):
    return np.ceil(x)


@register("round")
def round_(x):
    """Round half up, so ``round(-0.5) == 0`` and ``round(2.5) == 3``."""
    return np.floor(np.add(x, 0.5))


@register("sqrt")
def sqrt(x):
    return np.sqrt(x)


@register("pow")
def pow_(x, y):
    return np.power(np.asarray(x, dtype=np.float64), y)


@register("exp")
def exp(x):
    return np.exp(x)


@register("log")
def log(x):
    return np.log(x)


@register("clamp")
def clamp(x, lo=0.0, hi=1.0):
    return np.minimum(hi, np.maximum(lo, x))


@register("mix")
def mix(a, b, t):
    """Linear interpolation from ``a`` to ``b``."""
    return np.add(np.multiply(a, np.subtract(1.0, t)), np.multiply(b, t))


@register("step")
def step(edge, x):
    return np.where(np.less(x, edge), 0.0, 1.0)


@register("smoothstep")
def smoothstep(e0, e1, x):
    """Hermite interpolation between 0 at ``e0`` and 1 at ``e1``."""
    t = clamp(np.true_divide(np.subtract(x, e0), np.subtract(e1, e0)))
    return t * t * (3.0 - 2.0 * t)


@register("lum")
def lum(r, g, b):
    """Rec. 601 luma."""
    return np.add(
        np.add(np.multiply(0.299, r), np.multiply(0.587, g)), np.multiply(0.114, b)
    )


@register("saturate")
def saturate(x):
    return clamp(x, 0.0, 1.0)


FUNCTIONS = MappingProxyType(_FUNCTIONS)
