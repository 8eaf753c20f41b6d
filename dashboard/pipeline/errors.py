"""
Error taxonomy for the stage-ordering engine.

InvalidTarget, ClientNotFound and MoveInFlight are resolved locally: the
controller logs them and drops the gesture. RemoteError comes from a roster
source and is turned into a MoveFailed notification by reconciliation.
"""


class PipelineError(Exception):
    """Base class for pipeline board errors."""
    pass


class InvalidTarget(PipelineError):
    """Raised when a move targets a stage outside the registry."""
    pass


class ClientNotFound(PipelineError):
    """Raised when a move names a client absent from the current partition."""
    pass


class MoveInFlight(PipelineError):
    """Raised when a client already has an unsettled move."""
    pass


class RemoteError(PipelineError):
    """Raised by a roster source when the data service rejects a call or is unreachable."""

    def __init__(self, message: str, status: int = None):
        super().__init__(message)
        self.status = status
