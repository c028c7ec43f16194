"""Symbolic equation generation: rate laws, drift, diffusion and jumps.

For a network with species x, reactions j with net stoichiometry N and rate
laws a_j(x, k, t) the generated equations are

    ODE:   dx/dt = N a
    SDE:   dx = N a dt + G dW,   G[i, j] = N[i, j] sqrt(max(0, a_j)) eta_j
    Jumps: reaction j fires with propensity a_j and changes x by N[:, j]

where eta_j is the resolved noise scaling of reaction j. With eta = 1,
G G^T has diagonal entries sum_j N[i, j]^2 a_j (chemical Langevin equation).

The ``max(0, .)`` clamp inside the square root is a known approximation for
rate laws that can turn negative; it does not correct the rate law itself.

These functions only read the network, so they work on incomplete networks
too. Solver-ready artifacts are built in `crn_equations.systems`.
"""

from __future__ import annotations

from typing import List, Tuple

import sympy as sp

from . import algebra
from .errors import NonIntegerJumpEffectError
from .network import ReactionNetwork
from .noise import resolve_noise_scaling
from .reaction import Reaction


def _factorial(n: sp.Expr) -> sp.Expr:
    return sp.factorial(n) if n.is_integer else sp.gamma(n + 1)


def oderatelaw(reaction: Reaction, combinatoric_ratelaws: bool = True) -> sp.Expr:
    """Deterministic rate law of a reaction.

    Mass action gives ``k * prod_i S_i**n_i / n_i!``; the factorial is only
    applied when `combinatoric_ratelaws` is set and ``n_i >= 2``.
    """
    if reaction.only_use_rate:
        return reaction.rate
    law = reaction.rate
    for s, n in reaction.substrates.items():
        law *= s.symbol if n == 1 else s.symbol**n
        if combinatoric_ratelaws and n > 1:
            law /= _factorial(n)
    return law


def jumpratelaw(reaction: Reaction, combinatoric_ratelaws: bool = True) -> sp.Expr:
    """Propensity of a reaction in the discrete (molecule count) setting.

    Mass action uses the exact combinatorics
    ``k * prod_i S_i (S_i - 1) ... (S_i - n_i + 1) / n_i!``.
    """
    if reaction.only_use_rate:
        return reaction.rate
    law = reaction.rate
    for s, n in reaction.substrates.items():
        if not n.is_integer:
            raise NonIntegerJumpEffectError(
                f"substrate {s.qualified_name} of '{reaction.to_string()}' has "
                f"non-integer coefficient {n}"
            )
        law *= sp.Mul(*[s.symbol - i for i in range(int(n))])
        if combinatoric_ratelaws and n > 1:
            law /= sp.factorial(n)
    return law


def reaction_rates(network: ReactionNetwork) -> List[sp.Expr]:
    """ODE rate law of every reaction, in reaction order."""
    return [
        oderatelaw(rx, owner.combinatoric_ratelaws)
        for rx, owner in network.reactions_with_owner()
    ]


def net_stoichiometry(network: ReactionNetwork) -> sp.Matrix:
    """Species x reactions matrix of net stoichiometric changes."""
    return network.net_stoichiometry_matrix()


def drift(network: ReactionNetwork, simplify: bool = True) -> sp.Matrix:
    """Return the ODE right-hand side as an n×1 SymPy matrix."""
    N = net_stoichiometry(network)
    rates = reaction_rates(network)
    F = sp.zeros(N.rows, 1)
    for i in range(N.rows):
        F[i, 0] = sp.Add(*[N[i, j] * rates[j] for j in range(N.cols) if N[i, j] != 0])
        if simplify:
            F[i, 0] = algebra.simplify(F[i, 0])
    return F


def jacobian(network: ReactionNetwork, simplify: bool = True) -> sp.Matrix:
    """Return the n×n Jacobian of the drift with respect to the species."""
    F = drift(network, simplify=simplify)
    x = network.species_symbols
    J = sp.zeros(len(x), len(x))
    for i in range(len(x)):
        for k, xk in enumerate(x):
            J[i, k] = algebra.differentiate(F[i, 0], xk)
    return J


def diffusion(network: ReactionNetwork) -> sp.Matrix:
    """Return the n×m chemical Langevin diffusion matrix (one column per reaction)."""
    N = net_stoichiometry(network)
    rates = reaction_rates(network)
    scales = list(resolve_noise_scaling(network).values())
    G = sp.zeros(N.rows, N.cols)
    for j in range(N.cols):
        noise = sp.sqrt(sp.Max(sp.Integer(0), rates[j])) * scales[j]
        for i in range(N.rows):
            if N[i, j] != 0:
                G[i, j] = N[i, j] * noise
    return G


def jump_rates(network: ReactionNetwork) -> List[sp.Expr]:
    """Propensity of every reaction, in reaction order."""
    return [
        jumpratelaw(rx, owner.combinatoric_ratelaws)
        for rx, owner in network.reactions_with_owner()
    ]


def jump_effects(network: ReactionNetwork) -> List[Tuple[int, ...]]:
    """Integer state change of every reaction, in species order.

    Raises
    ------
    NonIntegerJumpEffectError
        If a net change is fractional.
    """
    N = net_stoichiometry(network)
    reactions = network.reactions
    out: List[Tuple[int, ...]] = []
    for j in range(N.cols):
        column = []
        for i in range(N.rows):
            v = N[i, j]
            if not algebra.is_integer_value(v):
                raise NonIntegerJumpEffectError(
                    f"reaction '{reactions[j].to_string()}' changes "
                    f"{network.species[i].qualified_name} by {v}; jumps need integer changes"
                )
            column.append(int(v))
        out.append(tuple(column))
    return out
