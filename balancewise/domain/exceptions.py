from __future__ import annotations


class DomainError(Exception):
    """Base for domain errors."""

    code = "DOMAIN_ERROR"
    default_message = "domain error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class NotFoundError(DomainError):
    """Requested record does not exist."""

    code = "NOT_FOUND"
    default_message = "resource not found"


class DuplicateKeyError(DomainError):
    """Record with the same unique key already exists."""

    code = "DUPLICATE_KEY"
    default_message = "resource already exists"


class InvalidOrExpiredStateError(DomainError):
    """OAuth state is unknown, expired or already used."""

    code = "INVALID_STATE"
    default_message = "invalid or expired state"


class UnauthorizedError(DomainError):
    """Credential is valid but its subject is gone."""

    code = "UNAUTHORIZED"
    default_message = "unauthorized"


class ExtendedAccessNotGrantedError(UnauthorizedError):
    """User never granted Google Drive access, or the grant was swept."""

    code = "DRIVE_NOT_GRANTED"
    default_message = "google drive permission not granted or expired"


class InvalidTokenError(DomainError):
    """Session token has a bad signature, is expired or malformed."""

    code = "INVALID_TOKEN"
    default_message = "invalid or expired token"


class UpstreamError(DomainError):
    """External provider call failed."""

    code = "UPSTREAM_ERROR"
    default_message = "external provider call failed"


class ProviderExchangeError(UpstreamError):
    """Authorization code or refresh token exchange failed."""

    code = "PROVIDER_EXCHANGE_FAILED"
    default_message = "failed to exchange code"


class ProviderProfileError(UpstreamError):
    """Profile lookup at the identity provider failed."""

    code = "PROVIDER_PROFILE_FAILED"
    default_message = "failed to get user info"


class AnalysisFailedError(UpstreamError):
    """Vision model call failed or returned an unusable answer."""

    code = "ANALYSIS_FAILED"
    default_message = "failed to analyze food image"


class ImageTooLargeError(DomainError):
    """Uploaded image exceeds the size ceiling."""

    code = "IMAGE_TOO_LARGE"
    default_message = "image size must not exceed 5MB"


class InvalidImageError(DomainError):
    """Uploaded image has an unsupported MIME type."""

    code = "INVALID_IMAGE"
    default_message = "image format not supported, please upload JPEG, PNG, or WebP"


class NoImageProvidedError(DomainError):
    """Upload carried no image bytes."""

    code = "NO_IMAGE_PROVIDED"
    default_message = "no image file provided"


class ImageDownloadError(DomainError):
    """Profile picture could not be downloaded."""

    code = "IMAGE_DOWNLOAD_FAILED"
    default_message = "failed to download image"


class InternalError(DomainError):
    """Unexpected failure, wrapped with the step that failed."""

    code = "INTERNAL_ERROR"
    default_message = "internal error"
