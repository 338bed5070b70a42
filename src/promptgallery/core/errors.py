"""Exception taxonomy for Prompt Gallery.

Every error raised by the core derives from :class:`GalleryError`.  The
message of each exception is intended to be displayed directly to the user;
the orchestration layer turns them into ``{"success": False, "error": ...}``
responses.
"""


class GalleryError(Exception):
    """Base class for user-facing gallery errors."""

    pass


class ValidationError(GalleryError):
    """Invalid input: empty, oversized or blocked prompt, malformed signup fields."""

    pass


class ConflictError(ValidationError):
    """A unique field (email or username) is already taken.

    Attributes:
        field: Name of the conflicting field.
    """

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"A user with this {field} already exists")


class AuthError(GalleryError):
    """Missing or invalid credential."""

    pass


class ForbiddenError(AuthError):
    """The caller is authenticated but does not own the record."""

    pass


class NotFoundError(GalleryError):
    """Unknown record id."""

    pass


class ProviderError(GalleryError):
    """An image provider failed after exhausting or aborting its candidates."""

    pass


class PersistenceError(GalleryError):
    """The store is unavailable or an operation on it failed."""

    pass
