"""Thin adapter around SymPy.

Everything the rest of the package needs from the computer algebra system goes
through the functions here (parsing, simplification, differentiation,
substitution, numeric evaluation, code generation), so the CAS is reached
through one narrow surface.
"""

from __future__ import annotations

import re
from tokenize import TokenError
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import sympy as sp
from sympy.parsing.sympy_parser import (
    convert_xor,
    implicit_multiplication,
    parse_expr,
    standard_transformations,
)

from .errors import UnresolvedSymbolError


#: Independent variable shared by every network.
TIME = sp.Symbol("t")

_TRANSFORMATIONS = standard_transformations + (implicit_multiplication, convert_xor)

# Dotted identifiers such as ``A.X`` or ``outer.inner.k`` (qualified names).
_QUALIFIED_RE = re.compile(r"(?<![^\W\d])(?<!\.)[^\W\d]\w*(?:\.[^\W\d]\w*)+")

# Names a rate string may use besides declared entities. Single letters such as
# E, I, N, O, Q, S are deliberately absent so they parse as plain symbols.
_PARSER_GLOBALS: Dict[str, Any] = {
    "Integer": sp.Integer,
    "Float": sp.Float,
    "Rational": sp.Rational,
    "Symbol": sp.Symbol,
    "Function": sp.Function,
    "exp": sp.exp,
    "log": sp.log,
    "sqrt": sp.sqrt,
    "sin": sp.sin,
    "cos": sp.cos,
    "tanh": sp.tanh,
    "Abs": sp.Abs,
    "Max": sp.Max,
    "Min": sp.Min,
    "pi": sp.pi,
}


def as_expr(value: Any, local_dict: Optional[Mapping[str, Any]] = None) -> sp.Expr:
    """Convert a number, string or SymPy object into a SymPy expression.

    Strings accept ``^`` for powers and implicit multiplication (``2X``,
    ``0.33eta``). Names found in `local_dict` map to the given objects; any other
    name becomes a plain symbol. Qualified names (``A.X``) become the symbol of
    that name, the symbol a composed entity carries.
    """
    if isinstance(value, sp.Basic):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("empty expression")
        names = dict(local_dict or {})

        def bind(match: "re.Match[str]") -> str:
            placeholder = f"qualified_ref_{len(names)}"
            names[placeholder] = sp.Symbol(match.group(0))
            return placeholder

        try:
            return parse_expr(
                _QUALIFIED_RE.sub(bind, text),
                local_dict=names,
                global_dict=dict(_PARSER_GLOBALS),
                transformations=_TRANSFORMATIONS,
            )
        except (SyntaxError, TokenError) as exc:
            raise ValueError(f"could not parse expression '{text}'") from exc
    if isinstance(value, bool):
        raise TypeError("booleans are not valid expressions")
    return sp.sympify(value)


def simplify(expr: sp.Expr) -> sp.Expr:
    """Return an equivalent, simplified expression."""
    return sp.simplify(expr)


def differentiate(expr: sp.Expr, var: sp.Symbol) -> sp.Expr:
    return sp.diff(expr, var)


def substitute(expr: sp.Expr, mapping: Mapping[sp.Symbol, Any]) -> sp.Expr:
    """Replace symbols by expressions or numbers (structural, no re-parsing)."""
    repl = {k: as_expr(v) for k, v in mapping.items()}
    return as_expr(expr).xreplace(repl)


def evaluate(expr: sp.Expr, mapping: Mapping[sp.Symbol, Any]) -> float:
    """Evaluate `expr` to a float once every symbol in it has a value."""
    value = substitute(expr, mapping)
    missing = free_symbols(value)
    if missing:
        names = ", ".join(str(s) for s in missing)
        raise UnresolvedSymbolError(f"no value given for: {names}")
    return float(value.evalf())


def free_symbols(expr: sp.Expr) -> List[sp.Symbol]:
    """Free symbols of `expr`, sorted by name for deterministic iteration."""
    return sorted(as_expr(expr).free_symbols, key=lambda s: str(s))


def is_integer_value(value: sp.Expr) -> bool:
    value = as_expr(value)
    return bool(value.is_number and value.is_integer)


def lambdify(
    args: Sequence[Any],
    exprs: Any,
    *,
    modules: str = "numpy",
) -> Callable[..., Any]:
    """Compile expressions into a numeric function of `args`.

    `args` may contain nested sequences of symbols; symbols whose names are not
    valid Python identifiers (qualified names like ``A.X``) are replaced by
    dummies automatically.
    """
    return sp.lambdify(args, exprs, modules=modules)
