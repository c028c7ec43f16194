"""Resolution of per-reaction noise scaling for chemical Langevin equations.

Precedence, highest first:

1. an explicit ``noise_scaling`` entry in the reaction's metadata,
2. the ``default_noise_scaling`` of the sub-system that owns the reaction,
3. exactly 1.

`set_default_noise_scaling` writes a scale into every reaction, at every
level, that has no explicit entry, which makes it the closest default for
all of them.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

import sympy as sp

from . import algebra
from .components import Parameter
from .errors import UnresolvedSymbolError
from .network import ReactionNetwork
from .reaction import NOISE_SCALING, Reaction

logger = logging.getLogger(__name__)


def resolve_noise_scaling(network: ReactionNetwork) -> Dict[Reaction, sp.Expr]:
    """Return the effective noise scale of every reaction, in reaction order.

    Raises
    ------
    UnresolvedSymbolError
        If a scale references a symbol that is neither a species nor a
        parameter of the (flattened) network.
    """
    table = network.symbol_table()
    out: Dict[Reaction, sp.Expr] = {}
    for rx, owner in network.reactions_with_owner():
        if rx.noise_scaling is not None:
            scale = rx.noise_scaling
        elif owner.default_noise_scaling is not None:
            scale = owner.default_noise_scaling
        else:
            scale = sp.Integer(1)
        missing = [s for s in algebra.free_symbols(scale) if s not in table and s != algebra.TIME]
        if missing:
            raise UnresolvedSymbolError(
                f"noise scaling {sp.sstr(scale)} of reaction '{rx.to_string()}' references "
                f"undeclared {', '.join(str(s) for s in missing)}"
            )
        out[rx] = scale
    return out


def set_default_noise_scaling(network: ReactionNetwork, scale: Any) -> ReactionNetwork:
    """Return a copy where every reaction without explicit scaling uses `scale`.

    Recurses into all sub-systems. The input is left untouched and the copy
    keeps its completeness. Strings are parsed against the top-level names.
    """
    expr = network.resolve_expression(scale)
    logger.debug("setting default noise scaling %s on %s", expr, network.name)
    return _with_default(network, expr)


def _with_default(network: ReactionNetwork, expr: sp.Expr) -> ReactionNetwork:
    new = network._derive()
    new._reactions = [
        rx if rx.noise_scaling is not None else rx.with_metadata(**{NOISE_SCALING: expr})
        for rx in network._reactions
    ]
    new._systems = [_with_default(child, expr) for child in network._systems]
    return new


def noise_scaling_parameters(network: ReactionNetwork) -> List[Parameter]:
    """Parameters occurring in any resolved noise scale, in parameter order."""
    used = set()
    for scale in resolve_noise_scaling(network).values():
        used |= scale.free_symbols
    return [p for p in network.parameters if p.symbol in used]
