from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .network import ReactionNetwork


# A single term like "2A" or "2 A" or "A".
_TERM_RE = re.compile(r"^\s*(?:(\d+)\s*)?([^\W\d]\w*)\s*$")

# Supported arrow tokens, longest first.
_ARROW_RE = re.compile(r"(<=>|<->|=>|->)")

# "name" or "name=value" inside a declaration directive.
_DECL_RE = re.compile(r"^([^\W\d]\w*)(?:\s*=\s*(.+))?$")


def _parse_complex(complex_str: str) -> Dict[str, int]:
    """Parse a complex string like '2A + B' into {'A': 2, 'B': 1}.

    Accepted:
    - '0' or '' for the empty complex
    - terms separated by '+'
    - coefficients as positive integers (e.g. '2A', '2 A')
    """
    s = complex_str.strip()
    if s == "" or s == "0":
        return {}

    parts = [p.strip() for p in s.split("+") if p.strip()]
    coeffs: Dict[str, int] = {}
    for part in parts:
        m = _TERM_RE.match(part)
        if not m:
            raise ValueError(f"Could not parse complex term: '{part}'")
        c_str, name = m.group(1), m.group(2)
        c = int(c_str) if c_str is not None else 1
        coeffs[name] = coeffs.get(name, 0) + c
    return coeffs


def _split_top_level(s: str, separators: str = ",;") -> List[str]:
    """Split on separators that are not nested inside parentheses."""
    parts: List[str] = []
    depth = 0
    current = ""
    for ch in s:
        if ch in "([":
            depth += 1
        elif ch in ")]":
            depth -= 1
        if ch in separators and depth == 0:
            parts.append(current)
            current = ""
        else:
            current += ch
    parts.append(current)
    return [p.strip() for p in parts if p.strip()]


def _consume_leading_rate_brackets(s: str) -> Tuple[List[str], str]:
    """Consume leading [ ... ] blocks and return (tokens, remainder).

    Supported forms:
        "[k1] C"
        "[k1][km1] C"
        "[k1, km1] C"
        "[hill(X, v, K, n)] C"
    """
    tokens: List[str] = []
    rest = s.strip()

    while rest.startswith("["):
        depth = 0
        end = -1
        for i, ch in enumerate(rest):
            if ch == "[":
                depth += 1
            elif ch == "]":
                depth -= 1
                if depth == 0:
                    end = i
                    break
        if end == -1:
            raise ValueError(f"Unclosed '[' in rate specification: '{s}'")
        tokens.extend(_split_top_level(rest[1:end]))
        rest = rest[end + 1 :].strip()

    return tokens, rest


def _parse_metadata(text: str) -> Dict[str, str]:
    """Parse 'noise_scaling=eta, description=decay' into a dict of strings."""
    out: Dict[str, str] = {}
    for item in _split_top_level(text):
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Metadata entries must look like key=value, got '{item}'")
        out[key.strip()] = value.strip()
    return out


@dataclass
class ReactionParser:
    """Parse reaction strings into a `ReactionNetwork`.

    One reaction per line (or separated by ';'); '#' starts a comment line.

    Arrows
    ------
    - '->'  mass action, rate is a rate constant
    - '=>'  the rate is used as the full rate law
    - '<->' reversible pair with mass action
    - '<=>' reversible pair, rates used as full rate laws

    Rates
    -----
    Rates go in square brackets immediately after the arrow and may be any
    expression understood by SymPy (plus `hill`, `mm`, ...):
    - 'A + B ->[k1] C'
    - 'A <->[k1][km1] B' or 'A <->[k1, km1] B'
    - '0 =>[hill(Y, v, K, n)] X'

    Missing rates are auto-generated as k1, k2, ... (irreversible) and
    k1/km1, ... (reversible).

    Metadata
    --------
    After a '|': 'X ->[d] 0 | noise_scaling=eta, description=decay'. For a
    reversible pair the metadata applies to both directions.

    Directives
    ----------
    - '@species X Y=10'
    - '@parameters eta1 eta2=0.1'
    - '@default_noise_scaling eta1 + 1'
    - '@combinatoric_ratelaws false'

    Species are ordered by explicit declaration, then by first appearance in
    the reaction complexes (left to right, top to bottom). Parameters not
    declared explicitly are registered from the rates in reaction order.
    """

    rate_prefix: str = "k"

    def parse_network(self, text: str, name: str = "network") -> ReactionNetwork:
        raw_lines: List[str] = []
        for line in text.splitlines():
            stripped = line.strip()
            if stripped.startswith("@"):
                raw_lines.append(stripped)
            else:
                raw_lines.extend(_split_top_level(line, ";"))
        lines = [ln.strip() for ln in raw_lines if ln.strip() and not ln.strip().startswith("#")]
        if not lines:
            raise ValueError("No reactions found in input")

        directives = [ln for ln in lines if ln.startswith("@")]
        reaction_lines = [ln for ln in lines if not ln.startswith("@")]

        network = ReactionNetwork(name=name)
        for ln in directives:
            self._apply_directive(network, ln)

        # First pass: register species in order of first appearance.
        for ln in reaction_lines:
            lhs, _arrow, rhs, _rates, _meta = self._split_reaction_line(ln)
            for species_name in list(_parse_complex(lhs)) + list(_parse_complex(rhs)):
                if not any(s.name == species_name for s in network.own_species):
                    network.add_species(species_name)

        pair_idx = 1
        for ln in reaction_lines:
            lhs_str, arrow, rhs_str, rate_tokens, meta = self._split_reaction_line(ln)
            lhs = _parse_complex(lhs_str)
            rhs = _parse_complex(rhs_str)
            only_use_rate = arrow in {"=>", "<=>"}

            if arrow in {"<->", "<=>"}:
                if len(rate_tokens) == 0:
                    kf = f"{self.rate_prefix}{pair_idx}"
                    kr = f"{self.rate_prefix}m{pair_idx}"
                elif len(rate_tokens) == 1:
                    kf = rate_tokens[0]
                    kr = f"{self.rate_prefix}m{pair_idx}"
                elif len(rate_tokens) == 2:
                    kf, kr = rate_tokens
                else:
                    raise ValueError(
                        f"Too many rate tokens for reversible reaction '{ln}'. "
                        "Use at most two (forward, reverse)."
                    )
                network.add_reaction(lhs, rhs, kf, meta, only_use_rate=only_use_rate)
                network.add_reaction(rhs, lhs, kr, meta, only_use_rate=only_use_rate)
            else:
                if len(rate_tokens) == 0:
                    kf = f"{self.rate_prefix}{pair_idx}"
                elif len(rate_tokens) == 1:
                    kf = rate_tokens[0]
                else:
                    raise ValueError(
                        f"Too many rate tokens for irreversible reaction '{ln}'. "
                        "Use at most one."
                    )
                network.add_reaction(lhs, rhs, kf, meta, only_use_rate=only_use_rate)
            pair_idx += 1

        return network

    @staticmethod
    def _apply_directive(network: ReactionNetwork, line: str) -> None:
        keyword, _sep, rest = line[1:].partition(" ")
        rest = rest.strip()
        if keyword in {"species", "parameters"}:
            declare = network.add_species if keyword == "species" else network.add_parameter
            for token in _split_top_level(rest, " ,"):
                m = _DECL_RE.match(token)
                if not m:
                    raise ValueError(f"Could not parse declaration '{token}' in '{line}'")
                declare(m.group(1), default=m.group(2))
        elif keyword == "default_noise_scaling":
            if not rest:
                raise ValueError("@default_noise_scaling needs an expression")
            network.default_noise_scaling = network.resolve_expression(rest)
        elif keyword == "combinatoric_ratelaws":
            if rest.lower() not in {"true", "false"}:
                raise ValueError(f"@combinatoric_ratelaws expects true or false, got '{rest}'")
            network.combinatoric_ratelaws = rest.lower() == "true"
        else:
            raise ValueError(f"Unknown directive '@{keyword}'")

    @staticmethod
    def _split_reaction_line(line: str) -> Tuple[str, str, str, List[str], Optional[Dict[str, str]]]:
        """Split a reaction line into (lhs, arrow, rhs, rate_tokens, metadata)."""
        ln, bar, meta_str = line.strip().partition("|")
        meta = _parse_metadata(meta_str) if bar else None

        m = _ARROW_RE.search(ln)
        if not m:
            raise ValueError(f"No supported arrow found in line: '{line}'")

        arrow = m.group(1)
        lhs = ln[: m.start()].strip()
        rest = ln[m.end() :].strip()

        rate_tokens, rhs = _consume_leading_rate_brackets(rest)
        rhs = rhs.strip()
        if rhs == "":
            raise ValueError(f"Missing RHS complex in line: '{line}'")

        return lhs, arrow, rhs, rate_tokens, meta
