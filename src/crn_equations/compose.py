"""Hierarchical composition and other structural transforms of networks.

Composition gives every entity of a child a stable path: the child's name is
prepended to the entity's namespace once, when the child is composed, and the
child's expressions are rewritten to the resulting symbols (``X`` in child
``A`` becomes ``A.X``). Nothing is looked up by name at simulation time.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Set

import sympy as sp

from . import algebra
from .components import NAMESPACE_SEPARATOR, Entity
from .errors import AmbiguousReferenceError, CompositionOfCompleteModelError
from .network import ReactionNetwork
from .reaction import NOISE_SCALING

logger = logging.getLogger(__name__)


def _rebuild(
    network: ReactionNetwork,
    entity_map: Mapping[int, Entity],
    symbol_map: Mapping[sp.Symbol, sp.Expr],
    *,
    drop: Optional[Set[int]] = None,
) -> ReactionNetwork:
    """Copy a network tree, renaming entities/symbols and dropping entities.

    `entity_map` and `drop` are keyed by ``id(entity)``. The copy is incomplete.
    """
    drop = drop or set()
    default = network.default_noise_scaling
    new = network._derive(
        default_noise_scaling=None if default is None else default.xreplace(symbol_map),
    )
    new._complete = False
    new._species = [entity_map.get(id(s), s) for s in network._species if id(s) not in drop]
    new._parameters = [entity_map.get(id(p), p) for p in network._parameters if id(p) not in drop]
    species_map = {s: entity_map[id(s)] for s in network._species if id(s) in entity_map}
    for rx in network._reactions:
        for s in rx.participants:
            if id(s) in entity_map:
                species_map[s] = entity_map[id(s)]
    new._reactions = [rx.rewritten(species_map, symbol_map) for rx in network._reactions]
    new._systems = [_rebuild(c, entity_map, symbol_map, drop=drop) for c in network._systems]
    return new


def _check_distinct_names(network: ReactionNetwork) -> None:
    """Raise if two distinct entities share a qualified name, i.e. a symbol."""
    seen: Dict[str, Entity] = {}
    for e in list(network.species) + list(network.parameters):
        first = seen.setdefault(e.qualified_name, e)
        if first is not e:
            raise AmbiguousReferenceError(
                f"composing '{network.name}' gives two distinct entities named "
                f"'{e.qualified_name}' ({first!r} and {e!r}); rename one or share the same object"
            )


def _namespaced(network: ReactionNetwork, prefix: str, shared: Set[int]) -> ReactionNetwork:
    """Copy `network` with every non-shared entity moved under `prefix`."""
    entities = [e for e in list(network.species) + list(network.parameters) if id(e) not in shared]
    symbol_map: Dict[sp.Symbol, sp.Expr] = {}
    for e in entities:
        symbol_map[e.symbol] = sp.Symbol(NAMESPACE_SEPARATOR.join((prefix,) + e.path))
    entity_map: Dict[int, Entity] = {}
    for e in entities:
        default = None if e.default is None else e.default.xreplace(symbol_map)
        entity_map[id(e)] = e.namespaced(prefix, default=default)
    return _rebuild(network, entity_map, symbol_map)


def compose(
    parent: ReactionNetwork,
    children: Iterable[ReactionNetwork],
    name: Optional[str] = None,
) -> ReactionNetwork:
    """Compose `children` into `parent` as named sub-systems.

    Returns a new, incomplete network. The parent's own entities and existing
    sub-systems come first, followed by namespaced copies of `children` in
    order. An entity object reachable from more than one of the inputs (e.g. a
    parameter created by the caller and passed to two children) is a single
    shared entity: it keeps its symbol and is listed once.

    Raises
    ------
    CompositionOfCompleteModelError
        If the parent or any child is complete.
    ValueError
        If two sub-systems would share a name.
    AmbiguousReferenceError
        If a shared entity and another entity would have the same qualified
        name, e.g. a caller-made ``Parameter("d")`` passed to the children of a
        parent that declares its own ``d``.
    """
    children = list(children)
    for net in [parent] + children:
        if net.is_complete():
            raise CompositionOfCompleteModelError(
                f"network '{net.name}' is complete and cannot be composed"
            )

    names = [c.name for c in parent.systems]
    for child in children:
        if child.name in names:
            raise ValueError(f"duplicate sub-system name '{child.name}' in '{parent.name}'")
        names.append(child.name)

    # Shared entities: reachable from the parent and a child, or from two children.
    seen: Dict[int, int] = {}
    for e in list(parent.species) + list(parent.parameters):
        seen[id(e)] = 2
    for child in children:
        for e in set(id(x) for x in list(child.species) + list(child.parameters)):
            seen[e] = seen.get(e, 0) + 1
    shared = {k for k, count in seen.items() if count > 1}

    result = parent._derive(name=parent.name if name is None else str(name))
    result._complete = False
    for child in children:
        result._systems.append(_namespaced(child, child.name, shared))
    _check_distinct_names(result)
    logger.debug(
        "composed %s from [%s]; %d species, %d shared entities",
        result.name,
        ", ".join(c.name for c in children),
        len(result.species),
        len(shared),
    )
    return result


def flatten(network: ReactionNetwork, name: Optional[str] = None) -> ReactionNetwork:
    """Collapse a hierarchical network into a single level.

    Entities keep their qualified names. A sub-system's default noise scaling is
    written into the metadata of its reactions that have no explicit scaling,
    so resolved noise scales are unchanged. The result is incomplete.
    """
    flat = ReactionNetwork(
        name=network.name if name is None else name,
        combinatoric_ratelaws=network.combinatoric_ratelaws,
        strict=network.strict,
    )
    flat._species = list(network.species)
    flat._parameters = list(network.parameters)
    for rx, owner in network.reactions_with_owner():
        if rx.noise_scaling is None and owner.default_noise_scaling is not None:
            rx = rx.with_metadata(**{NOISE_SCALING: owner.default_noise_scaling})
        flat._reactions.append(rx)
    return flat


def fix_parameters(
    network: ReactionNetwork,
    values: Mapping[Any, Any],
) -> ReactionNetwork:
    """Substitute parameters by values and drop them from the network.

    Keys are parameter objects, symbols or (qualified) names. The result is an
    incomplete copy; every rate, noise scaling and default is rewritten.
    """
    symbol_map: Dict[sp.Symbol, sp.Expr] = {}
    drop: Set[int] = set()
    for key, value in values.items():
        entity = network._as_entity(key)
        if entity not in network.parameters:
            raise ValueError(f"{entity!r} is not a parameter of '{network.name}'")
        symbol_map[entity.symbol] = algebra.as_expr(value)
        drop.add(id(entity))

    entity_map: Dict[int, Entity] = {}
    for e in list(network.species) + list(network.parameters):
        if id(e) in drop or e.default is None:
            continue
        new_default = e.default.xreplace(symbol_map)
        if new_default != e.default:
            entity_map[id(e)] = type(e)(
                e.name,
                namespace=e.namespace,
                default=new_default,
                description=e.description,
                metadata=e.metadata,
            )
    return _rebuild(network, entity_map, symbol_map, drop=drop)
