"""Base adapter for remote image hosting.

Uploads raise UploadError. Deletes never raise; their outcome comes back
as a CleanupResult for the caller to log.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from restaurant_menu_service.models.menu_models import UploadResult


@dataclass
class CleanupResult:
    """Outcome of a best-effort image deletion.

    Attributes:
        handle: The handle that was deleted (None for a no-op)
        success: Whether the asset is gone (or never existed)
        error_message: Why the deletion failed, None on success
    """

    handle: str | None
    success: bool
    error_message: str | None = None


class ImageStore(ABC):
    """Abstract base class for image hosting adapters."""

    def __init__(self, provider_name: str) -> None:
        """Initialize the image store.

        Args:
            provider_name: Name of the hosting provider (e.g., 'cloudinary')
        """
        self.provider_name = provider_name

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """Whether credentials are present so that uploads can be attempted."""

    @abstractmethod
    async def upload(self, data: bytes, folder: str | None = None) -> UploadResult:
        """Upload an image buffer.

        Args:
            data: Raw image bytes
            folder: Remote folder, provider default when None

        Returns:
            UploadResult: Public URL and deletion handle

        Raises:
            UploadError: On bad input, missing configuration or remote failure
        """

    @abstractmethod
    async def delete(self, handle: str | None) -> CleanupResult:
        """Delete a previously uploaded image.

        A None or already-deleted handle counts as success.

        Args:
            handle: Handle returned by upload

        Returns:
            CleanupResult: Outcome, never raised
        """
