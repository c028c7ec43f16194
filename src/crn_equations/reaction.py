from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional

import sympy as sp

from .components import Species
from .errors import InvalidStoichiometryError

#: Metadata key holding a per-reaction noise scaling expression.
NOISE_SCALING = "noise_scaling"
#: Metadata key holding a human-readable description.
DESCRIPTION = "description"


def _coefficient(value: Any, *, integer: bool, species: Species) -> sp.Expr:
    """Validate one stoichiometric coefficient and return it as a SymPy number."""
    try:
        if isinstance(value, float):
            c = sp.nsimplify(value, rational=True)
        else:
            c = sp.sympify(value)
    except (sp.SympifyError, TypeError) as exc:
        raise InvalidStoichiometryError(
            f"coefficient of {species.qualified_name} is not a number: {value!r}"
        ) from exc
    if not c.is_number or not c.is_real:
        raise InvalidStoichiometryError(
            f"coefficient of {species.qualified_name} must be a real number, got {value!r}"
        )
    if not c.is_positive:
        raise InvalidStoichiometryError(
            f"coefficient of {species.qualified_name} must be positive, got {value!r}"
        )
    if integer and not c.is_integer:
        raise InvalidStoichiometryError(
            f"coefficient of {species.qualified_name} must be an integer, got {value!r}"
        )
    return c


@dataclass(frozen=True, eq=False)
class Reaction:
    """A single reaction between species.

    Parameters
    ----------
    substrates:
        Ordered mapping species -> stoichiometric coefficient (strictly positive).
    products:
        Ordered mapping species -> stoichiometric coefficient (strictly positive).
    rate:
        SymPy expression. With ``only_use_rate=False`` it is a rate constant and
        mass action is applied on top of it; otherwise it is the full rate law.
    metadata:
        Free mapping; the keys ``noise_scaling`` and ``description`` are
        understood by the package.
    only_use_rate:
        Use `rate` as is instead of applying mass action.
    integer_stoichiometry:
        Require integer coefficients. Fractional stoichiometry is fine for
        ODE/SDE models but is rejected by the jump generator.

    Notes
    -----
    The net change of species ``S`` is ``products[S] - substrates[S]``. A
    species may sit on both sides (a catalyst); its net change is then zero.
    """

    substrates: Mapping[Species, sp.Expr]
    products: Mapping[Species, sp.Expr]
    rate: sp.Expr
    metadata: Mapping[str, Any] = field(default_factory=dict)
    only_use_rate: bool = False
    integer_stoichiometry: bool = True

    def __post_init__(self) -> None:
        if not self.substrates and not self.products:
            raise InvalidStoichiometryError("a reaction needs at least one substrate or product")
        for side in ("substrates", "products"):
            checked: Dict[Species, sp.Expr] = {}
            for sp_, c in dict(getattr(self, side)).items():
                if not isinstance(sp_, Species):
                    raise TypeError(f"{side} must be keyed by Species, got {sp_!r}")
                checked[sp_] = _coefficient(c, integer=self.integer_stoichiometry, species=sp_)
            object.__setattr__(self, side, checked)
        object.__setattr__(self, "rate", sp.sympify(self.rate))
        object.__setattr__(self, "metadata", dict(self.metadata))

    # -----------------------------
    # Stoichiometry
    # -----------------------------

    @property
    def participants(self) -> List[Species]:
        """Species on either side, substrates first, without repeats."""
        return list(dict.fromkeys(list(self.substrates) + list(self.products)))

    def net_stoichiometry(self) -> Dict[Species, sp.Expr]:
        """Return the ordered mapping species -> net change (zeros included)."""
        return {s: self.net_change(s) for s in self.participants}

    def net_change(self, species: Species) -> sp.Expr:
        return self.products.get(species, sp.Integer(0)) - self.substrates.get(species, sp.Integer(0))

    # -----------------------------
    # Metadata
    # -----------------------------

    @property
    def noise_scaling(self) -> Optional[sp.Expr]:
        """Explicit per-reaction noise scaling, or None when unset."""
        value = self.metadata.get(NOISE_SCALING)
        return None if value is None else sp.sympify(value)

    @property
    def description(self) -> Optional[str]:
        return self.metadata.get(DESCRIPTION)

    def with_metadata(self, **entries: Any) -> "Reaction":
        """Return a copy with `entries` merged into the metadata."""
        merged = dict(self.metadata)
        merged.update(entries)
        return replace(self, metadata=merged)

    def rewritten(
        self,
        species_map: Mapping[Species, Species],
        symbol_map: Mapping[sp.Symbol, sp.Expr],
    ) -> "Reaction":
        """Return a copy with species and symbols renamed (used by composition)."""
        metadata = dict(self.metadata)
        if metadata.get(NOISE_SCALING) is not None:
            metadata[NOISE_SCALING] = sp.sympify(metadata[NOISE_SCALING]).xreplace(symbol_map)
        return replace(
            self,
            substrates={species_map.get(s, s): c for s, c in self.substrates.items()},
            products={species_map.get(s, s): c for s, c in self.products.items()},
            rate=self.rate.xreplace(symbol_map),
            metadata=metadata,
        )

    # -----------------------------
    # Display
    # -----------------------------

    def to_string(self) -> str:
        """Render as ``rate, 2A + B --> C``."""

        def complex_to_str(side: Mapping[Species, sp.Expr]) -> str:
            terms = []
            for s, c in side.items():
                terms.append(s.qualified_name if c == 1 else f"{c}{s.qualified_name}")
            return " + ".join(terms) if terms else "0"

        arrow = "==>" if self.only_use_rate else "-->"
        return f"{sp.sstr(self.rate)}, {complex_to_str(self.substrates)} {arrow} {complex_to_str(self.products)}"

    def __repr__(self) -> str:
        return f"Reaction({self.to_string()!r})"
