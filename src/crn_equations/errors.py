"""Exception types raised while building and compiling reaction networks.

All of them derive from :class:`ReactionNetworkError`, itself a ``ValueError``,
so callers that only care about "bad input" can keep catching ``ValueError``.
"""

from __future__ import annotations


class ReactionNetworkError(ValueError):
    """Base class for all reaction network errors."""


class InvalidStoichiometryError(ReactionNetworkError):
    """A reaction coefficient is non-positive or not an integer."""


class AmbiguousReferenceError(ReactionNetworkError):
    """A name matches more than one entity.

    Raised for a bare name found in several sub-systems, and by `compose` when
    two distinct entities would end up with the same qualified name (and so
    the same symbol).
    """


class UnresolvedSymbolError(ReactionNetworkError):
    """An expression or lookup references an undeclared symbol."""


class NonIntegerJumpEffectError(ReactionNetworkError):
    """A jump process was requested for a reaction with fractional stoichiometry."""


class IncompleteModelError(ReactionNetworkError):
    """A solver artifact was requested from a network that is not finalized."""


class CompositionOfCompleteModelError(ReactionNetworkError):
    """A finalized network was passed to ``compose``."""


class AlreadyCompleteError(ReactionNetworkError):
    """A finalized network was mutated or finalized under a different name."""
