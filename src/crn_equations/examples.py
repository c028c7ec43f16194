"""Canonical example networks.

All factories return *incomplete* networks so they can be composed or
extended; call ``finalize()`` before compiling them into solver artifacts.
"""

from __future__ import annotations

from typing import Any, Optional

from .kinetics import hill
from .network import ReactionNetwork


def linear_cascade_network() -> ReactionNetwork:
    """Three-species production/conversion/degradation cascade.

    Network:
        p,       0  -> 2 X1
        k1,      X1 -> X2
        k2, k3:  X2 -> X3   (two parallel channels)
        d,       X3 -> 0

    Species order: [X1, X2, X3]
    Parameter order: [p, k1, k2, k3, d]
    """
    rn = ReactionNetwork(name="cascade")
    X1, X2, X3 = (rn.add_species(n) for n in ("X1", "X2", "X3"))
    p, k1, k2, k3, d = (rn.add_parameter(n) for n in ("p", "k1", "k2", "k3", "d"))

    rn.add_reaction({}, {X1: 2}, p.symbol)
    rn.add_reaction({X1: 1}, {X2: 1}, k1.symbol)
    rn.add_reaction({X2: 1}, {X3: 1}, k2.symbol)
    rn.add_reaction({X2: 1}, {X3: 1}, k3.symbol)
    rn.add_reaction({X3: 1}, {}, d.symbol)
    return rn


def hill_network() -> ReactionNetwork:
    """Self-activating gene with Hill kinetics and linear degradation.

    Network:
        v/10 + hill(X1, v, K, n),  0  => X1
        d,                         X1 -> 0

    Species order: [X1]
    Parameter order: [v, K, n, d]
    """
    rn = ReactionNetwork(name="hill")
    X1 = rn.add_species("X1")
    v, K, n, d = (rn.add_parameter(s).symbol for s in ("v", "K", "n", "d"))

    rn.add_reaction({}, {X1: 1}, v / 10 + hill(X1.symbol, v, K, n), only_use_rate=True)
    rn.add_reaction({X1: 1}, {}, d)
    return rn


def binding_chain_network() -> ReactionNetwork:
    """Branching chain of reversible binding steps.

    Network:
        X1 + X2 <-> X3
        X3 + X4 <-> X5
        X5 + X6 <-> X7

    Species order: [X1, ..., X7]
    Parameter order: [k1, ..., k6]
    """
    return ReactionNetwork.from_string(
        """
        @species X1 X2 X3 X4 X5 X6 X7
        @parameters k1 k2 k3 k4 k5 k6
        X1 + X2 <->[k1, k2] X3
        X3 + X4 <->[k3, k4] X5
        X5 + X6 <->[k5, k6] X7
        """,
        name="binding",
    )


def dimerization_network() -> ReactionNetwork:
    """Dimerization ``2 X <-> X2`` (exercises the 1/2! mass-action factor)."""
    return ReactionNetwork.from_string("2X <->[kb, ku] X2", name="dimerization")


def michaelis_menten_network() -> ReactionNetwork:
    """Reversible enzyme binding followed by catalysis.

    Reaction scheme:
        S + E <-> C -> E + P

    Species order: [S, E, C, P]
    Parameter order: [k1, km1, k2]
    """
    return ReactionNetwork.from_string(
        """
        S + E <->[k1, km1] C
        C ->[k2] E + P
        """,
        name="michaelis_menten",
    )


def birth_death_network(
    name: str = "birth_death",
    production_noise: Optional[Any] = None,
    default_noise_scaling: Optional[Any] = None,
) -> ReactionNetwork:
    """Production and degradation of a single species ``X``.

    Network:
        p, 0 -> X   [noise_scaling = production_noise, when given]
        d, X -> 0

    Species order: [X]
    Parameter order: [p, d]
    """
    rn = ReactionNetwork(name=name, default_noise_scaling=default_noise_scaling)
    X = rn.add_species("X")
    p = rn.add_parameter("p")
    d = rn.add_parameter("d")
    meta = {} if production_noise is None else {"noise_scaling": production_noise}
    rn.add_reaction({}, {X: 1}, p.symbol, meta)
    rn.add_reaction({X: 1}, {}, d.symbol)
    return rn


def noise_scaling_network() -> ReactionNetwork:
    """Network mixing a default noise scaling with per-reaction overrides.

    Network:
        @default_noise_scaling eta1
        p,  0  -> X1
        k1, X1 -> X2   [noise_scaling = eta2]
        k2, X2 -> X1   [noise_scaling = 2*eta2 + 1]
        d,  X2 -> 0    [noise_scaling = 0]

    Species order: [X1, X2]
    Parameter order: [eta1, eta2, p, k1, k2, d]
    """
    return ReactionNetwork.from_string(
        """
        @parameters eta1 eta2
        @default_noise_scaling eta1
        0 ->[p] X1
        X1 ->[k1] X2 | noise_scaling=eta2
        X2 ->[k2] X1 | noise_scaling=2*eta2 + 1
        X2 ->[d] 0 | noise_scaling=0
        """,
        name="noise_scaling",
    )
