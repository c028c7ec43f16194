"""Human-readable reporting utilities.

Lightweight helpers producing console / Markdown text for a network:

- its reactions (with effective noise scaling),
- the generated ODE right-hand sides, and
- the chemical Langevin diffusion terms.

Nothing here is required for equation generation; it is strictly presentation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import sympy as sp

from .equations import diffusion, drift
from .network import ReactionNetwork
from .noise import resolve_noise_scaling


def _expr_to_str(e: sp.Expr) -> str:
    """Stable string for SymPy expressions in reports."""
    return sp.sstr(e)


def format_reactions(network: ReactionNetwork, *, show_noise_scaling: bool = True) -> List[str]:
    """Format every reaction as ``rate, A + B --> C``, one per line."""
    scales = resolve_noise_scaling(network) if show_noise_scaling else {}
    out: List[str] = []
    for rx in network.reactions:
        line = rx.to_string()
        if show_noise_scaling and scales[rx] != 1:
            line += f"  [noise_scaling={_expr_to_str(scales[rx])}]"
        if rx.description:
            line += f"  # {rx.description}"
        out.append(line)
    return out


def format_odes(network: ReactionNetwork, *, max_items: Optional[int] = None) -> List[str]:
    """Format the drift as ``dX/dt = ...`` lines."""
    F = drift(network)
    out: List[str] = []
    for i, s in enumerate(network.species):
        out.append(f"d{s.qualified_name}/dt = {_expr_to_str(F[i, 0])}")
    if max_items is not None and len(out) > max_items:
        out = out[:max_items] + [f"... ({len(out) - max_items} more)"]
    return out


def format_diffusion(network: ReactionNetwork) -> List[str]:
    """Format the nonzero diffusion entries as ``g[X, j] = ...`` lines."""
    G = diffusion(network)
    out: List[str] = []
    for i, s in enumerate(network.species):
        for j in range(G.cols):
            if G[i, j] != 0:
                out.append(f"g[{s.qualified_name}, {j + 1}] = {_expr_to_str(G[i, j])}")
    return out


@dataclass
class ReportOptions:
    """Tunable knobs for report verbosity."""

    max_equations: int = 20
    include_diffusion: bool = False
    include_latex: bool = False


def format_network_report(network: ReactionNetwork, *, options: Optional[ReportOptions] = None) -> str:
    """Format a Markdown report of a network and its generated equations."""
    opt = options or ReportOptions()
    lines: List[str] = [f"### {network.name}", network.summary(), "", "Reactions:"]
    lines.extend("  " + s for s in format_reactions(network))
    lines.append("")
    lines.append("Reaction-rate equations:")
    lines.extend("  " + s for s in format_odes(network, max_items=opt.max_equations))
    if opt.include_diffusion:
        lines.append("")
        lines.append("Diffusion terms:")
        lines.extend("  " + s for s in format_diffusion(network))
    if opt.include_latex:
        lines.append("")
        lines.append(network.to_latex())
    return "\n".join(lines) + "\n"
