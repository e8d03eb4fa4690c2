# leadgrid/utils/exceptions.py - Custom exception classes


class LeadSearchError(Exception):
    """The upstream search or export service failed or was unreachable."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
