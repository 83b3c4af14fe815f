"""Error taxonomy for the effort engine.

Component-internal failures are converted to one of these before crossing a
public entry point; raw provider or storage exceptions never escape.
"""


class EffortEngineError(Exception):
    """Base class for all engine errors."""


class InvalidInput(EffortEngineError):
    """Input rejected before any I/O was performed."""


class DecompositionFailed(EffortEngineError):
    """The decomposition phase errored, timed out or returned malformed content."""


class EstimationFailed(EffortEngineError):
    """The estimation phase errored, timed out or returned malformed content."""


class PersistenceFailed(EffortEngineError):
    """A store write was rolled back; no partial state is visible."""


class NotFound(EffortEngineError):
    """Unknown work item id."""

    def __init__(self, item_kind, item_id):
        self.item_kind = item_kind
        self.item_id = item_id
        kind = getattr(item_kind, "value", item_kind)
        super().__init__(f"{kind} with ID {item_id} not found")
