"""Solver-ready artifacts compiled from complete reaction networks.

Every evaluator takes plain numeric arrays ``u`` (species order), ``p``
(parameter order) and a time ``t`` and returns numpy arrays, so the artifacts
can be handed to any ODE, SDE or jump solver. `ODESystem.solve` forwards to
`scipy.integrate.solve_ivp` for convenience.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import sympy as sp
from scipy.integrate import solve_ivp
from sympy.core.function import AppliedUndef

from . import algebra, equations
from .errors import IncompleteModelError, UnresolvedSymbolError
from .network import ReactionNetwork
from .reaction import Reaction

logger = logging.getLogger(__name__)


@dataclass
class GenerationOptions:
    """Knobs for artifact generation."""

    simplify: bool = True
    modules: str = "numpy"


def _require_complete(network: ReactionNetwork, what: str) -> None:
    if not network.is_complete():
        raise IncompleteModelError(
            f"network '{network.name}' must be finalized before building {what}; call finalize()"
        )


def _check_symbols(network: ReactionNetwork, exprs: Iterable[sp.Expr]) -> None:
    known = set(network.symbol_table()) | {algebra.TIME}
    missing = set()
    undefined = set()
    for e in exprs:
        missing |= set(algebra.free_symbols(e)) - known
        undefined |= {str(f.func) for f in sp.sympify(e).atoms(AppliedUndef)}
    if undefined:
        names = ", ".join(sorted(undefined))
        raise UnresolvedSymbolError(
            f"network '{network.name}' calls undefined rate functions: {names} "
            "(see register_rate_function)"
        )
    if missing:
        names = ", ".join(sorted(str(s) for s in missing))
        raise UnresolvedSymbolError(f"network '{network.name}' uses undeclared symbols: {names}")


def _arguments(network: ReactionNetwork) -> List[Any]:
    return [list(network.species_symbols), list(network.parameter_symbols), algebra.TIME]


@dataclass(frozen=True)
class ODESystem:
    """Reaction-rate equations ``du/dt = f(u, p, t)``."""

    network: ReactionNetwork
    drift: sp.Matrix
    jacobian: sp.Matrix
    _f: Callable[..., Any] = field(repr=False)
    _jac: Callable[..., Any] = field(repr=False)

    @property
    def n_species(self) -> int:
        return self.drift.rows

    def f(self, u: Sequence[float], p: Sequence[float], t: float = 0.0) -> np.ndarray:
        """Drift vector at ``(u, p, t)``."""
        return np.asarray(self._f(u, p, t), dtype=float).reshape(self.n_species)

    def jac(self, u: Sequence[float], p: Sequence[float], t: float = 0.0) -> np.ndarray:
        """Jacobian ``df/du`` at ``(u, p, t)``."""
        return np.asarray(self._jac(u, p, t), dtype=float).reshape(self.n_species, self.n_species)

    def rhs(self, p: Sequence[float]) -> Callable[[float, np.ndarray], np.ndarray]:
        """Return ``fun(t, u)`` with the parameters bound, as scipy expects."""
        p = np.asarray(p, dtype=float)

        def fun(t: float, u: np.ndarray) -> np.ndarray:
            return self.f(u, p, t)

        return fun

    def solve(self, u0: Any, t_span: Tuple[float, float], p: Any = None, **kwargs: Any):
        """Integrate with `scipy.integrate.solve_ivp`.

        `u0` and `p` may be vectors or mappings keyed by name/entity (defaults
        fill the gaps). Extra keyword arguments go to `solve_ivp`.
        """
        u0_vec = np.asarray(self.network.state_vector(u0), dtype=float)
        p_vec = np.asarray(self.network.parameter_vector(p), dtype=float)
        if kwargs.get("method") in {"Radau", "BDF", "LSODA"} and "jac" not in kwargs:
            kwargs["jac"] = lambda t, u: self.jac(u, p_vec, t)
        return solve_ivp(self.rhs(p_vec), t_span, u0_vec, **kwargs)


@dataclass(frozen=True)
class SDESystem:
    """Chemical Langevin equation ``du = f dt + g dW``."""

    network: ReactionNetwork
    drift: sp.Matrix
    diffusion: sp.Matrix
    _f: Callable[..., Any] = field(repr=False)
    _g: Callable[..., Any] = field(repr=False)

    @property
    def noise_shape(self) -> Tuple[int, int]:
        """Shape of the diffusion matrix, species x reactions."""
        return self.diffusion.shape

    def f(self, u: Sequence[float], p: Sequence[float], t: float = 0.0) -> np.ndarray:
        return np.asarray(self._f(u, p, t), dtype=float).reshape(self.drift.rows)

    def g(self, u: Sequence[float], p: Sequence[float], t: float = 0.0) -> np.ndarray:
        """Diffusion matrix at ``(u, p, t)``."""
        return np.asarray(self._g(u, p, t), dtype=float).reshape(self.noise_shape)


@dataclass(frozen=True)
class Jump:
    """One reaction channel of a jump process.

    `kind` is ``"mass_action"`` when the rate constant depends on neither
    species nor time, ``"variable_rate"`` when the propensity depends on time
    and ``"constant_rate"`` otherwise.
    """

    reaction: Reaction
    rate: sp.Expr
    net_change: np.ndarray
    kind: str
    _propensity: Callable[..., Any] = field(repr=False)

    def propensity(self, u: Sequence[float], p: Sequence[float], t: float = 0.0) -> float:
        return float(self._propensity(u, p, t))


@dataclass(frozen=True)
class JumpSystem:
    """Ordered reaction channels of a stochastic chemical kinetics model."""

    network: ReactionNetwork
    jumps: Tuple[Jump, ...]

    def propensities(self, u: Sequence[float], p: Sequence[float], t: float = 0.0) -> np.ndarray:
        return np.array([j.propensity(u, p, t) for j in self.jumps], dtype=float)

    def net_changes(self) -> np.ndarray:
        """Species x reactions integer matrix of state changes."""
        if not self.jumps:
            return np.zeros((len(self.network.species), 0), dtype=int)
        return np.stack([j.net_change for j in self.jumps], axis=1)


def ode_system(network: ReactionNetwork, options: Optional[GenerationOptions] = None) -> ODESystem:
    """Compile a complete network into reaction-rate equations."""
    opt = options or GenerationOptions()
    _require_complete(network, "an ODE system")
    F = equations.drift(network, simplify=opt.simplify)
    _check_symbols(network, F)
    J = equations.jacobian(network, simplify=opt.simplify)
    args = _arguments(network)
    logger.debug("built ODE system for %s: %d equations", network.name, F.rows)
    return ODESystem(
        network=network,
        drift=F,
        jacobian=J,
        _f=algebra.lambdify(args, list(F), modules=opt.modules),
        _jac=algebra.lambdify(args, J.tolist(), modules=opt.modules),
    )


def sde_system(network: ReactionNetwork, options: Optional[GenerationOptions] = None) -> SDESystem:
    """Compile a complete network into a chemical Langevin equation."""
    opt = options or GenerationOptions()
    _require_complete(network, "an SDE system")
    F = equations.drift(network, simplify=opt.simplify)
    G = equations.diffusion(network)
    _check_symbols(network, list(F) + list(G))
    args = _arguments(network)
    logger.debug("built SDE system for %s: noise shape %s", network.name, G.shape)
    return SDESystem(
        network=network,
        drift=F,
        diffusion=G,
        _f=algebra.lambdify(args, list(F), modules=opt.modules),
        _g=algebra.lambdify(args, G.tolist(), modules=opt.modules),
    )


def _jump_kind(reaction: Reaction, rate: sp.Expr, species: set) -> str:
    symbols = rate.free_symbols
    if algebra.TIME in symbols:
        return "variable_rate"
    if not reaction.only_use_rate and not (reaction.rate.free_symbols & species):
        return "mass_action"
    return "constant_rate"


def jump_system(network: ReactionNetwork, options: Optional[GenerationOptions] = None) -> JumpSystem:
    """Compile a complete network into jumps (propensity, integer state change).

    Raises
    ------
    NonIntegerJumpEffectError
        If any reaction has fractional stoichiometry.
    """
    opt = options or GenerationOptions()
    _require_complete(network, "a jump system")
    effects = equations.jump_effects(network)
    rates = equations.jump_rates(network)
    _check_symbols(network, rates)
    args = _arguments(network)
    species = set(network.species_symbols)
    jumps = []
    for rx, rate, effect in zip(network.reactions, rates, effects):
        jumps.append(
            Jump(
                reaction=rx,
                rate=rate,
                net_change=np.array(effect, dtype=int),
                kind=_jump_kind(rx, rate, species),
                _propensity=algebra.lambdify(args, rate, modules=opt.modules),
            )
        )
    logger.debug("built jump system for %s: %d channels", network.name, len(jumps))
    return JumpSystem(network=network, jumps=tuple(jumps))
