"""Error types raised and reported by the agenda core."""


class AgendaError(Exception):
    """Base error for the agenda."""


class TransientFetchError(AgendaError):
    """One-shot fetch failed; recovered by selecting the date again."""


class ListenerError(AgendaError):
    """Live subscription failed."""


class ValidationError(AgendaError):
    """User input rejected before any mutation."""


class MutationError(AgendaError):
    """Create, update or delete against the store failed."""
