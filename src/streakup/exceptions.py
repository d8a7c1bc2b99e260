"""Domain errors raised by the progress and gamification services.

Routers translate these into HTTP responses; services never build
HTTPExceptions themselves.
"""

from __future__ import annotations


class NotFoundError(LookupError):
    """A referenced user, challenge, badge or progress record does not exist."""


class AlreadyCompletedTodayError(ValueError):
    """The progress record already has a completion for today's UTC date."""


class AlreadyJoinedError(ValueError):
    """The user already participates in the challenge."""


class ChallengeFullError(ValueError):
    """The challenge reached max_participants."""


class BadgeConditionError(ValueError):
    """A badge definition carries an invalid condition."""


class RepresentativeBadgeError(ValueError):
    """A representative badge selection breaks the showcase rules."""


class ChallengeOwnershipError(PermissionError):
    """Only the challenge's creator may change or delete it."""
