"""Top-level package API for crn_equations.

This package compiles chemical reaction networks into the equations used to
simulate them: reaction-rate ODEs, chemical Langevin SDEs (with per-reaction
noise scaling) and jump processes for stochastic chemical kinetics. Networks
can be composed hierarchically; sub-system entities are namespaced.

Public API:
- Species, Parameter, Reaction, ReactionNetwork, ReactionParser
- compose, flatten, fix_parameters
- resolve_noise_scaling, set_default_noise_scaling, noise_scaling_parameters
- drift, diffusion, jacobian, jump_effects, jump_rates, oderatelaw, jumpratelaw
- ode_system, sde_system, jump_system, GenerationOptions
- mm, mmr, hill, hillr, hillar, register_rate_function
- Error types and built-in example networks
"""

from .components import Parameter, Species
from .reaction import Reaction
from .network import ReactionNetwork
from .parser import ReactionParser
from .compose import compose, fix_parameters, flatten
from .noise import noise_scaling_parameters, resolve_noise_scaling, set_default_noise_scaling
from .equations import (
    diffusion,
    drift,
    jacobian,
    jump_effects,
    jump_rates,
    jumpratelaw,
    net_stoichiometry,
    oderatelaw,
    reaction_rates,
)
from .systems import (
    GenerationOptions,
    Jump,
    JumpSystem,
    ODESystem,
    SDESystem,
    jump_system,
    ode_system,
    sde_system,
)
from .kinetics import hill, hillar, hillr, mm, mmr, register_rate_function
from .errors import (
    AlreadyCompleteError,
    AmbiguousReferenceError,
    CompositionOfCompleteModelError,
    IncompleteModelError,
    InvalidStoichiometryError,
    NonIntegerJumpEffectError,
    ReactionNetworkError,
    UnresolvedSymbolError,
)
from .report import ReportOptions, format_network_report
from .examples import (
    binding_chain_network,
    birth_death_network,
    dimerization_network,
    hill_network,
    linear_cascade_network,
    michaelis_menten_network,
    noise_scaling_network,
)

__all__ = [
    "Species",
    "Parameter",
    "Reaction",
    "ReactionNetwork",
    "ReactionParser",
    "compose",
    "flatten",
    "fix_parameters",
    "resolve_noise_scaling",
    "set_default_noise_scaling",
    "noise_scaling_parameters",
    "drift",
    "diffusion",
    "jacobian",
    "jump_effects",
    "jump_rates",
    "jumpratelaw",
    "net_stoichiometry",
    "oderatelaw",
    "reaction_rates",
    "GenerationOptions",
    "Jump",
    "JumpSystem",
    "ODESystem",
    "SDESystem",
    "ode_system",
    "sde_system",
    "jump_system",
    "hill",
    "hillr",
    "hillar",
    "mm",
    "mmr",
    "register_rate_function",
    "ReactionNetworkError",
    "InvalidStoichiometryError",
    "AmbiguousReferenceError",
    "UnresolvedSymbolError",
    "NonIntegerJumpEffectError",
    "IncompleteModelError",
    "CompositionOfCompleteModelError",
    "AlreadyCompleteError",
    "ReportOptions",
    "format_network_report",
    "linear_cascade_network",
    "hill_network",
    "binding_chain_network",
    "dimerization_network",
    "michaelis_menten_network",
    "birth_death_network",
    "noise_scaling_network",
]
