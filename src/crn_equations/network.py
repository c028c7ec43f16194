from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

import sympy as sp

from . import algebra
from .components import NAMESPACE_SEPARATOR, Entity, Parameter, Species
from .errors import (
    AlreadyCompleteError,
    AmbiguousReferenceError,
    UnresolvedSymbolError,
)
from .kinetics import RATE_FUNCTIONS
from .reaction import DESCRIPTION, NOISE_SCALING, Reaction

logger = logging.getLogger(__name__)

SpeciesKey = Union[Species, str]


@dataclass
class ReactionNetwork:
    """A (possibly hierarchical) chemical reaction network.

    Parameters
    ----------
    name:
        Name of the network; used as the namespace of its entities when it is
        composed into a parent.
    combinatoric_ratelaws:
        Divide mass-action rate laws by ``n!`` for every substrate with
        coefficient ``n >= 2``.
    default_noise_scaling:
        Noise scaling applied to this network's own reactions that carry no
        explicit ``noise_scaling`` metadata.
    strict:
        Disable implicit registration: every name used in a reaction must be
        declared beforehand.

    Notes
    -----
    Entities are ordered by declaration (explicit or implicit, first seen
    first). The flattened views `species`, `parameters` and `reactions` list
    this network's own entities followed by those of each sub-system in order;
    every generated vector and matrix uses that ordering.

    A network starts *incomplete*: it can be extended and composed. `finalize`
    makes it *complete*: it can then be compiled into solver artifacts but no
    longer modified or composed.
    """

    name: str = "network"
    combinatoric_ratelaws: bool = True
    default_noise_scaling: Optional[sp.Expr] = None
    strict: bool = False

    _species: List[Species] = field(default_factory=list, init=False, repr=False)
    _parameters: List[Parameter] = field(default_factory=list, init=False, repr=False)
    _reactions: List[Reaction] = field(default_factory=list, init=False, repr=False)
    _systems: List["ReactionNetwork"] = field(default_factory=list, init=False, repr=False)
    _complete: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        self.name = str(self.name).strip()
        if not self.name or NAMESPACE_SEPARATOR in self.name:
            raise ValueError(f"invalid network name '{self.name}'")
        if self.default_noise_scaling is not None:
            self.default_noise_scaling = algebra.as_expr(
                self.default_noise_scaling, local_dict=RATE_FUNCTIONS
            )

    # -----------------------------
    # Completeness
    # -----------------------------

    def is_complete(self) -> bool:
        return self._complete

    def finalize(self, name: Optional[str] = None) -> "ReactionNetwork":
        """Mark the network complete and return it.

        Finalizing twice is a no-op unless a different `name` is requested,
        which raises `AlreadyCompleteError`.
        """
        if self._complete:
            if name is not None and str(name) != self.name:
                raise AlreadyCompleteError(
                    f"network '{self.name}' is already complete; cannot finalize it as '{name}'"
                )
            return self
        if name is not None:
            self.name = str(name)
        self._complete = True
        logger.debug(
            "finalized network %s (%d species, %d parameters, %d reactions)",
            self.name,
            len(self.species),
            len(self.parameters),
            len(self.reactions),
        )
        return self

    def _ensure_mutable(self) -> None:
        if self._complete:
            raise AlreadyCompleteError(f"network '{self.name}' is complete and cannot be modified")

    # -----------------------------
    # Views
    # -----------------------------

    @property
    def t(self) -> sp.Symbol:
        """The independent variable (time)."""
        return algebra.TIME

    @property
    def own_species(self) -> Tuple[Species, ...]:
        return tuple(self._species)

    @property
    def own_parameters(self) -> Tuple[Parameter, ...]:
        return tuple(self._parameters)

    @property
    def own_reactions(self) -> Tuple[Reaction, ...]:
        return tuple(self._reactions)

    @property
    def systems(self) -> Tuple["ReactionNetwork", ...]:
        """Direct sub-systems, in composition order."""
        return tuple(self._systems)

    @property
    def species(self) -> List[Species]:
        """All species, own first then each sub-system's, without repeats."""
        return _unique(self._walk("_species"))

    @property
    def parameters(self) -> List[Parameter]:
        """All parameters, own first then each sub-system's, without repeats."""
        return _unique(self._walk("_parameters"))

    @property
    def reactions(self) -> List[Reaction]:
        return [rx for rx, _owner in self.reactions_with_owner()]

    def reactions_with_owner(self) -> Iterator[Tuple[Reaction, "ReactionNetwork"]]:
        """Yield ``(reaction, owning sub-system)`` in flattened order."""
        for rx in self._reactions:
            yield rx, self
        for child in self._systems:
            yield from child.reactions_with_owner()

    def _walk(self, attr: str) -> Iterator[Any]:
        yield from getattr(self, attr)
        for child in self._systems:
            yield from child._walk(attr)

    @property
    def species_symbols(self) -> Tuple[sp.Symbol, ...]:
        return tuple(s.symbol for s in self.species)

    @property
    def parameter_symbols(self) -> Tuple[sp.Symbol, ...]:
        return tuple(p.symbol for p in self.parameters)

    def symbol_table(self) -> Dict[sp.Symbol, Entity]:
        """Map every flattened species/parameter symbol to its entity."""
        table: Dict[sp.Symbol, Entity] = {}
        for e in list(self.species) + list(self.parameters):
            table.setdefault(e.symbol, e)
        return table

    def species_index(self, item: Union[Species, str, sp.Symbol]) -> int:
        return _index_of(self.species, self._as_entity(item), "species")

    def parameter_index(self, item: Union[Parameter, str, sp.Symbol]) -> int:
        return _index_of(self.parameters, self._as_entity(item), "parameter")

    # -----------------------------
    # Name resolution
    # -----------------------------

    def lookup(self, name: str) -> Entity:
        """Resolve a bare or qualified name to a species or parameter.

        An exact qualified match wins, then this network's own entities, then
        the sub-systems. A bare name found in more than one sub-system (and not
        at this level) is ambiguous.
        """
        name = str(name).strip()
        for e in list(self.species) + list(self.parameters):
            if e.qualified_name == name:
                return e
        if NAMESPACE_SEPARATOR not in name:
            for e in list(self._species) + list(self._parameters):
                if e.name == name:
                    return e
            hits: List[Tuple[str, Entity]] = []
            for child in self._systems:
                try:
                    found = child.lookup(name)
                except UnresolvedSymbolError:
                    continue
                if all(found is not e for _n, e in hits):
                    hits.append((child.name, found))
            if len(hits) > 1:
                where = ", ".join(e.qualified_name for _n, e in hits)
                raise AmbiguousReferenceError(
                    f"'{name}' is ambiguous in network '{self.name}': matches {where}"
                )
            if hits:
                return hits[0][1]
        raise UnresolvedSymbolError(f"no species or parameter '{name}' in network '{self.name}'")

    def _as_entity(self, item: Union[Entity, str, sp.Symbol]) -> Entity:
        if isinstance(item, (Species, Parameter)):
            return item
        if isinstance(item, sp.Symbol):
            table = self.symbol_table()
            if item in table:
                return table[item]
            item = str(item)
        return self.lookup(item)

    def _local_names(self) -> Dict[str, Any]:
        """Names usable in expression strings at this level."""
        names: Dict[str, Any] = dict(RATE_FUNCTIONS)
        names["t"] = algebra.TIME
        for e in list(self._species) + list(self._parameters):
            names[e.name] = e.symbol
        return names

    # -----------------------------
    # Declarations
    # -----------------------------

    def add_species(
        self,
        name: Union[str, Species],
        default: Any = None,
        description: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> Species:
        """Declare a species, or adopt an existing `Species` object (shared entity)."""
        self._ensure_mutable()
        if isinstance(name, Species):
            entity = name
        else:
            entity = Species(name, default=default, description=description, metadata=metadata or {})
        return self._register(entity, self._species)

    def add_parameter(
        self,
        name: Union[str, Parameter],
        default: Any = None,
        description: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> Parameter:
        """Declare a parameter, or adopt an existing `Parameter` object."""
        self._ensure_mutable()
        if isinstance(name, Parameter):
            entity = name
        else:
            entity = Parameter(name, default=default, description=description, metadata=metadata or {})
        return self._register(entity, self._parameters)

    def _register(self, entity: Entity, bucket: List[Any]) -> Any:
        known = list(self.species) + list(self.parameters)
        if any(entity is e for e in known):
            return entity
        for e in known:
            if e.qualified_name == entity.qualified_name:
                raise ValueError(
                    f"'{entity.qualified_name}' is already declared in network '{self.name}'"
                )
        bucket.append(entity)
        logger.debug("registered %r in network %s", entity, self.name)
        return entity

    def _resolve_species(self, key: SpeciesKey) -> Species:
        if isinstance(key, Species):
            return self.add_species(key)
        if isinstance(key, Parameter):
            raise ValueError(f"{key!r} is a parameter, not a species")
        name = str(key.name) if isinstance(key, sp.Symbol) else str(key)
        try:
            entity = self.lookup(name)
        except UnresolvedSymbolError:
            if self.strict or NAMESPACE_SEPARATOR in name:
                raise
            return self.add_species(name)
        if not isinstance(entity, Species):
            raise ValueError(f"'{name}' is a parameter, not a species")
        return entity

    def resolve_expression(self, value: Any, *, register: bool = False) -> sp.Expr:
        """Parse `value` and bind its free symbols to this network's entities.

        Qualified names (``A.k``) must resolve, or `UnresolvedSymbolError` is
        raised. Unknown bare names become new parameters when `register` is set
        (and the network is not strict); otherwise they are left untouched, to
        be reported by whoever consumes the expression.
        """
        expr = algebra.as_expr(value, local_dict=self._local_names())
        table = self.symbol_table()
        repl: Dict[sp.Symbol, sp.Expr] = {}
        for sym in algebra.free_symbols(expr):
            if sym == algebra.TIME or sym in table:
                continue
            try:
                repl[sym] = self.lookup(str(sym)).symbol
            except UnresolvedSymbolError:
                if NAMESPACE_SEPARATOR in str(sym):
                    raise
                if not register:
                    continue
                if self.strict:
                    raise
                self.add_parameter(str(sym))
        return expr.xreplace(repl) if repl else expr

    def add_reaction(
        self,
        substrates: Optional[Mapping[SpeciesKey, Any]],
        products: Optional[Mapping[SpeciesKey, Any]],
        rate: Any,
        metadata: Optional[Mapping[str, Any]] = None,
        *,
        only_use_rate: bool = False,
        integer_stoichiometry: bool = True,
    ) -> Reaction:
        """Append a reaction and return it.

        Parameters
        ----------
        substrates, products:
            Mappings from species (objects or names) to coefficients. ``None``
            or ``{}`` stands for the empty complex.
        rate:
            Rate constant (mass action) or full rate law (`only_use_rate`);
            a SymPy expression, number or string.
        metadata:
            Optional mapping; ``noise_scaling`` may be an expression or string.

        Raises
        ------
        InvalidStoichiometryError
            If a coefficient is non-positive or (with `integer_stoichiometry`)
            not an integer. Nothing is registered in that case.
        """
        self._ensure_mutable()
        n_species, n_params = len(self._species), len(self._parameters)
        try:
            subs = {self._resolve_species(k): c for k, c in (substrates or {}).items()}
            prods = {self._resolve_species(k): c for k, c in (products or {}).items()}
            rate_expr = self.resolve_expression(rate, register=True)
            meta = dict(metadata or {})
            if meta.get(NOISE_SCALING) is not None:
                meta[NOISE_SCALING] = self.resolve_expression(meta[NOISE_SCALING])
            if meta.get(DESCRIPTION) is not None:
                meta[DESCRIPTION] = str(meta[DESCRIPTION])
            rx = Reaction(
                substrates=subs,
                products=prods,
                rate=rate_expr,
                metadata=meta,
                only_use_rate=only_use_rate,
                integer_stoichiometry=integer_stoichiometry,
            )
        except Exception:
            del self._species[n_species:]
            del self._parameters[n_params:]
            raise

        if all(v == 0 for v in rx.net_stoichiometry().values()):
            logger.warning("reaction '%s' in network %s changes no species", rx.to_string(), self.name)
        self._reactions.append(rx)
        return rx

    # -----------------------------
    # Introspection
    # -----------------------------

    def net_stoichiometry_matrix(self) -> sp.Matrix:
        """Species x reactions matrix of net changes."""
        return self._stoich_matrix(lambda rx, s: rx.net_change(s))

    def substrate_matrix(self) -> sp.Matrix:
        return self._stoich_matrix(lambda rx, s: rx.substrates.get(s, sp.Integer(0)))

    def product_matrix(self) -> sp.Matrix:
        return self._stoich_matrix(lambda rx, s: rx.products.get(s, sp.Integer(0)))

    def _stoich_matrix(self, entry) -> sp.Matrix:
        species = self.species
        reactions = self.reactions
        M = sp.zeros(len(species), len(reactions))
        index = {id(s): i for i, s in enumerate(species)}
        for j, rx in enumerate(reactions):
            for s in rx.participants:
                M[index[id(s)], j] = entry(rx, s)
        return M

    def conservation_laws(self, integer_basis: bool = True) -> List[sp.Matrix]:
        """Return a basis of linear conservation laws.

        Each element is a 1×n row vector μ^T with μ^T N = 0, N the net
        stoichiometry matrix.
        """
        N = self.net_stoichiometry_matrix()
        n = N.rows
        if N.cols == 0:
            return [sp.Matrix([[1 if i == j else 0 for j in range(n)]]) for i in range(n)]
        out: List[sp.Matrix] = []
        for v in N.T.nullspace():
            row = sp.Matrix(v).T
            if integer_basis:
                row = _primitive_integer_row(row)
            out.append(row)
        return out

    def evaluate(
        self,
        expr: Any,
        u: Optional[Union[Sequence[float], Mapping[Any, float]]] = None,
        p: Optional[Union[Sequence[float], Mapping[Any, float]]] = None,
        t: float = 0.0,
    ) -> float:
        """Evaluate an expression at a state/parameter point.

        `u` and `p` are either vectors in species/parameter order or mappings;
        entities not given fall back to their defaults.
        """
        values: Dict[sp.Symbol, Any] = {algebra.TIME: t}
        values.update(zip(self.parameter_symbols, self.parameter_vector(p, require=False)))
        values.update(zip(self.species_symbols, self.state_vector(u, require=False)))
        values = {k: v for k, v in values.items() if v is not None}
        return algebra.evaluate(self.resolve_expression(expr), values)

    def state_vector(self, values: Any = None, *, require: bool = True) -> List[Any]:
        """Species values in species order, falling back to defaults."""
        return self._vector(self.species, values, require)

    def parameter_vector(self, values: Any = None, *, require: bool = True) -> List[Any]:
        """Parameter values in parameter order, falling back to defaults."""
        return self._vector(self.parameters, values, require)

    def _vector(self, entities: Sequence[Entity], values: Any, require: bool) -> List[Any]:
        if values is not None and not isinstance(values, Mapping):
            vec = list(values)
            if len(vec) != len(entities):
                raise ValueError(f"expected {len(entities)} values, got {len(vec)}")
            return [float(v) for v in vec]
        given: Dict[int, Any] = {}
        for key, v in (values or {}).items():
            given[id(self._as_entity(key))] = v
        out: List[Any] = []
        for e in entities:
            if id(e) in given:
                out.append(float(given[id(e)]))
            elif e.default is not None and e.default.is_number:
                out.append(float(e.default))
            elif require:
                raise UnresolvedSymbolError(f"no value for '{e.qualified_name}' and no default")
            else:
                out.append(None)
        return out

    def summary(self) -> str:
        """Human-readable summary."""
        lines = [
            f"ReactionNetwork(name={self.name!r}, n_species={len(self.species)}, "
            f"n_reactions={len(self.reactions)}, complete={self._complete})"
        ]
        lines.append("Species: " + ", ".join(s.qualified_name for s in self.species))
        lines.append("Parameters: " + ", ".join(p.qualified_name for p in self.parameters))
        if self._systems:
            lines.append("Sub-systems: " + ", ".join(c.name for c in self._systems))
        return "\n".join(lines)

    def to_latex(self) -> str:
        """Export the reaction-rate ODEs to a LaTeX ``align`` environment."""
        from .equations import drift  # local import to avoid circular import

        F = drift(self)
        lines = []
        for i, xi in enumerate(self.species_symbols):
            lines.append(f"\\frac{{d{sp.latex(xi)}}}{{dt}} &= {sp.latex(F[i, 0])}")
        body = " \\\\\n".join(lines)
        return "\\begin{align}\n" + body + "\n\\end{align}"

    # -----------------------------
    # Constructors
    # -----------------------------

    @classmethod
    def from_string(cls, text: str, name: str = "network", rate_prefix: str = "k") -> "ReactionNetwork":
        """Parse a network from reaction strings (see `ReactionParser`)."""
        from .parser import ReactionParser  # local import to avoid circular import

        return ReactionParser(rate_prefix=rate_prefix).parse_network(text, name=name)

    def _derive(self, **overrides: Any) -> "ReactionNetwork":
        """Shallow copy sharing entities and reactions; completeness is kept."""
        kwargs = dict(
            name=self.name,
            combinatoric_ratelaws=self.combinatoric_ratelaws,
            default_noise_scaling=self.default_noise_scaling,
            strict=self.strict,
        )
        kwargs.update(overrides)
        new = ReactionNetwork(**kwargs)
        new._species = list(self._species)
        new._parameters = list(self._parameters)
        new._reactions = list(self._reactions)
        new._systems = list(self._systems)
        new._complete = self._complete
        return new

    def __repr__(self) -> str:
        return (
            f"ReactionNetwork({self.name!r}, species={[s.qualified_name for s in self.species]}, "
            f"reactions={len(self.reactions)}, complete={self._complete})"
        )


def _unique(items: Iterator[Any]) -> List[Any]:
    seen = set()
    out = []
    for item in items:
        if id(item) not in seen:
            seen.add(id(item))
            out.append(item)
    return out


def _index_of(items: Sequence[Entity], entity: Entity, kind: str) -> int:
    for i, e in enumerate(items):
        if e is entity:
            return i
    raise UnresolvedSymbolError(f"{entity!r} is not a {kind} of this network")


def _primitive_integer_row(row: sp.Matrix) -> sp.Matrix:
    """Scale a rational row to primitive integers with a positive leading entry."""
    entries = [sp.nsimplify(v) for v in row]
    if all(v == 0 for v in entries):
        return row
    scale = sp.ilcm(1, *[sp.fraction(v)[1] for v in entries])
    ints = [int(v * scale) for v in entries]
    g = sp.igcd(0, *ints)
    sign = -1 if next(v for v in ints if v != 0) < 0 else 1
    return sp.Matrix([[sp.Integer(sign * v // g) for v in ints]])
