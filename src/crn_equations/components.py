from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional, Tuple, Union

import sympy as sp

#: Separator between namespace segments in qualified names (``A.B.X``).
NAMESPACE_SEPARATOR = "."


def _check_name(name: str) -> str:
    name = str(name).strip()
    if not name:
        raise ValueError("entity names must be non-empty")
    if NAMESPACE_SEPARATOR in name:
        raise ValueError(
            f"'{name}' contains '{NAMESPACE_SEPARATOR}', which is reserved for namespaces"
        )
    return name


@dataclass(frozen=True, eq=False)
class _Entity:
    """A named symbolic quantity owned by one reaction network.

    Parameters
    ----------
    name:
        Leaf name, unique within the declaring network.
    namespace:
        Names of the enclosing sub-systems, outermost first. Empty for
        entities of the network they were declared in; filled in by
        composition.
    default:
        Optional default value (number or expression).
    description:
        Optional free text.

    Notes
    -----
    Equality is identity. Two networks declaring ``X`` own two different
    entities even though their leaf names agree.
    """

    name: str
    namespace: Tuple[str, ...] = ()
    default: Optional[sp.Expr] = None
    description: Optional[str] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", _check_name(self.name))
        object.__setattr__(self, "namespace", tuple(self.namespace))
        if self.default is not None and not isinstance(self.default, sp.Basic):
            object.__setattr__(self, "default", sp.sympify(self.default))
        object.__setattr__(self, "metadata", dict(self.metadata))

    @property
    def path(self) -> Tuple[str, ...]:
        return self.namespace + (self.name,)

    @property
    def qualified_name(self) -> str:
        return NAMESPACE_SEPARATOR.join(self.path)

    @property
    def symbol(self) -> sp.Symbol:
        """SymPy symbol standing for this entity in expressions."""
        return sp.Symbol(self.qualified_name)

    def namespaced(self, prefix: str, default: Optional[sp.Expr] = None) -> "_Entity":
        """Return a copy living one namespace level deeper, under `prefix`."""
        return replace(
            self,
            namespace=(prefix,) + self.namespace,
            default=self.default if default is None else default,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.qualified_name!r})"


class Species(_Entity):
    """A time-dependent quantity whose amount is changed by reactions."""


class Parameter(_Entity):
    """A named symbolic constant."""


Entity = Union[Species, Parameter]
