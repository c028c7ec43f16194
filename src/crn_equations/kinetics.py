"""Common non-mass-action rate laws.

Each helper builds a SymPy expression, so the result can be used directly as a
reaction rate (together with ``only_use_rate`` where appropriate) and the
helpers are also available by name inside rate strings.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

import sympy as sp


def mm(X: Any, v: Any, K: Any) -> sp.Expr:
    """Michaelis-Menten rate ``v*X/(K + X)``."""
    X, v, K = map(sp.sympify, (X, v, K))
    return v * X / (K + X)


def mmr(X: Any, v: Any, K: Any) -> sp.Expr:
    """Repressive Michaelis-Menten rate ``v*K/(K + X)``."""
    X, v, K = map(sp.sympify, (X, v, K))
    return v * K / (K + X)


def hill(X: Any, v: Any, K: Any, n: Any) -> sp.Expr:
    """Hill activation ``v*X**n/(K**n + X**n)``."""
    X, v, K, n = map(sp.sympify, (X, v, K, n))
    return v * X**n / (K**n + X**n)


def hillr(X: Any, v: Any, K: Any, n: Any) -> sp.Expr:
    """Hill repression ``v*K**n/(K**n + X**n)``."""
    X, v, K, n = map(sp.sympify, (X, v, K, n))
    return v * K**n / (K**n + X**n)


def hillar(X: Any, Y: Any, v: Any, K: Any, n: Any) -> sp.Expr:
    """Hill function activated by `X` and repressed by `Y`."""
    X, Y, v, K, n = map(sp.sympify, (X, Y, v, K, n))
    return v * X**n / (X**n + Y**n + K**n)


#: Names exposed to the rate-string parser.
RATE_FUNCTIONS: Dict[str, Any] = {
    "mm": mm,
    "mmr": mmr,
    "hill": hill,
    "hillr": hillr,
    "hillar": hillar,
}


def register_rate_function(fn: Callable[..., Any], name: Optional[str] = None) -> Callable[..., Any]:
    """Make `fn` callable by name inside rate strings and return it unchanged.

    Usable as a decorator. `fn` receives SymPy expressions and must return one;
    the name defaults to ``fn.__name__``. Registration is global, so every
    network parsed afterwards (``0 =>[sat(Y, K)] X``) sees the function.
    """
    if not callable(fn):
        raise TypeError(f"{fn!r} is not callable")
    key = fn.__name__ if name is None else str(name)
    if not key.isidentifier():
        raise ValueError(f"rate function name must be an identifier, got '{key}'")
    RATE_FUNCTIONS[key] = fn
    return fn
