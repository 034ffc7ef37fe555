"""Error taxonomy.

Only structural problems escape the turn resolver (``TurnAbortedError``);
per-entity decision failures are caught, logged and degraded to "stay".
"""


class PugError(Exception):
    """Base class for engine errors."""


class LevelError(PugError, ValueError):
    """Level data is inconsistent (layer shapes, placements out of bounds)."""


class TurnAbortedError(PugError):
    """A turn could not be resolved; the committed state is unchanged."""


class PolicyResponseError(PugError, ValueError):
    """An external policy answer could not be coerced into a move."""
