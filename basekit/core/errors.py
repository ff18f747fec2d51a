"""Error taxonomy shared by every basekit module.

Library code raises these; routers are the only place that turns them into
HTTP responses.
"""

from __future__ import annotations


class BasekitError(Exception):
    """Root of all errors raised by basekit."""


class ConfigurationError(BasekitError):
    """A required environment variable is missing or malformed."""


class DatabaseError(BasekitError):
    """Base class for failures coming from the database port."""


class DatabaseConnectionError(DatabaseError):
    """A connection could not be acquired from the pool."""


class QueryError(DatabaseError):
    """The statement failed while executing or committing."""


class ConversionError(DatabaseError):
    """A column value could not be read as the requested type."""


class CsrfValidationError(BasekitError):
    """CSRF check failed.

    The message is always the same so callers cannot be used as an oracle;
    ``reason`` keeps the internal cause for logging.
    """

    message = "CSRF validation failed"

    def __init__(self, reason: str) -> None:
        super().__init__(self.message)
        self.reason = reason


class MailConfigurationError(BasekitError):
    """Mail is disabled or not usable with the current configuration."""


class MailDeliveryError(BasekitError):
    """The SMTP server refused the message or could not be reached."""


class UploadError(BasekitError):
    """Uploaded content could not be stored."""


class ImageProcessingError(BasekitError):
    """An image could not be decoded, resized or encoded."""


class AuthenticationError(BasekitError):
    """A JWT is missing, expired or not signed with the active secret."""


class NotFoundError(BasekitError):
    def __init__(self, entity: str) -> None:
        super().__init__(f"{entity} not found")
        self.entity = entity
