"""Custom exceptions for code-reference-optimizer."""


class NotFoundError(Exception):
    """Raised when a requested resource is not found."""

    pass


class SnapshotNotFoundError(NotFoundError):
    """Raised when a diff is requested for a key that was never snapshotted."""

    def __init__(self, key: str, kind: str = "snapshot") -> None:
        self.key = key
        self.kind = kind
        super().__init__(f"No {kind} found for {key}")


class ValidationError(Exception):
    """Raised when validation fails."""

    pass


class InvalidHunkSequenceError(ValidationError):
    """Raised when a hunk list cannot be applied to the original text."""

    pass
