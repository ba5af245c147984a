class LogisticsError(Exception):
    """Base exception for the trucking-load engine."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(LogisticsError):
    """Rejected before any write; the message is shown to the caller verbatim."""

    pass


class InvalidTransitionError(ValidationError):
    """Raised when a load status change is not allowed by the lifecycle."""

    def __init__(self, message: str, from_status: str, to_status: str) -> None:
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(message)


class NotFoundError(LogisticsError):
    pass


class TransientStoreError(LogisticsError):
    """A single store operation failed without corrupting prior state."""

    def __init__(self, message: str, original: Exception | None = None) -> None:
        self.original = original
        super().__init__(message)


class SchemaMissingError(TransientStoreError):
    """The backing table/relation for a shipment record does not exist."""

    pass


class ProvisioningError(LogisticsError):
    """Terminal failure of a booking after this attempt's records were rolled back."""

    pass


class DuplicateLoadError(ProvisioningError):
    """Another load already occupies the target sequence number."""

    def __init__(self, message: str, sequence_number: int) -> None:
        self.sequence_number = sequence_number
        super().__init__(message)
