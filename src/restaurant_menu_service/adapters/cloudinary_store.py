"""Cloudinary image store implementation.

Talks to the Cloudinary upload API directly over HTTPS using signed
requests. Credentials come in through CloudinaryConfig at construction time.
"""

import hashlib
import logging
import time
from dataclasses import dataclass
from typing import Any

import httpx

from restaurant_menu_service.adapters.base_image_store import CleanupResult, ImageStore
from restaurant_menu_service.errors import UploadError
from restaurant_menu_service.models.menu_models import UploadResult
from restaurant_menu_service.observability.decorators import traced
from restaurant_menu_service.observability.metrics import (
    record_upload_duration,
    record_upload_failure,
)

logger = logging.getLogger(__name__)

DEFAULT_FOLDER = "sisters-restaurant"
DEFAULT_MAX_UPLOAD_BYTES = 5 * 1024 * 1024

# Resize to fit 800x600 and let Cloudinary pick the quality
INCOMING_TRANSFORMATION = "c_limit,h_600,w_800/q_auto"

# Values shipped in the sample .env; treated as "not configured"
PLACEHOLDER_CREDENTIALS = {"your_cloud_name", "your_api_key", "your_api_secret"}


@dataclass(frozen=True)
class CloudinaryConfig:
    """Credentials and limits for the Cloudinary adapter."""

    cloud_name: str | None
    api_key: str | None
    api_secret: str | None
    folder: str = DEFAULT_FOLDER
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    timeout_seconds: float = 30.0

    @property
    def is_complete(self) -> bool:
        values = (self.cloud_name, self.api_key, self.api_secret)
        return all(values) and not any(value in PLACEHOLDER_CREDENTIALS for value in values)


def sign_params(params: dict[str, Any], api_secret: str) -> str:
    """Compute a Cloudinary API signature.

    Parameters are sorted by name, joined as ``key=value`` pairs with ``&``,
    suffixed with the secret and SHA-1 hashed.

    Args:
        params: Parameters to sign (file, api_key and resource_type excluded)
        api_secret: Account API secret

    Returns:
        str: Hex digest signature
    """
    to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params) if params[key] != "")
    return hashlib.sha1(f"{to_sign}{api_secret}".encode()).hexdigest()


def _error_message(response: httpx.Response) -> str:
    try:
        return str(response.json()["error"]["message"])
    except (ValueError, KeyError, TypeError):
        return response.text or f"HTTP {response.status_code}"


class CloudinaryImageStore(ImageStore):
    """Adapter for the Cloudinary image upload API."""

    def __init__(
        self,
        config: CloudinaryConfig,
        api_base_url: str = "https://api.cloudinary.com/v1_1",
    ) -> None:
        """Initialize Cloudinary adapter.

        Args:
            config: Account credentials and upload limits
            api_base_url: Cloudinary API root
        """
        super().__init__("cloudinary")
        self.config = config
        self.base_url = f"{api_base_url.rstrip('/')}/{config.cloud_name}/image"

    @property
    def is_configured(self) -> bool:
        return self.config.is_complete

    def _signed(self, params: dict[str, Any]) -> dict[str, Any]:
        signed = dict(params)
        signed["timestamp"] = str(int(time.time()))
        signed["signature"] = sign_params(signed, self.config.api_secret or "")
        signed["api_key"] = self.config.api_key
        return signed

    def _fail(self, message: str, status_code: int) -> UploadError:
        record_upload_failure(status_code)
        return UploadError(message, status_code=status_code)

    @traced("image_store.upload")
    async def upload(self, data: bytes, folder: str | None = None) -> UploadResult:
        """Upload an image buffer to Cloudinary.

        Args:
            data: Raw image bytes
            folder: Cloudinary folder, config default when None

        Returns:
            UploadResult: secure_url and public_id of the new asset

        Raises:
            UploadError: 400 for missing configuration, bad input or rejected
                credentials; 500 for network and server-side failures
        """
        if not self.is_configured:
            raise self._fail(
                "Cloudinary is not configured. Please set CLOUDINARY_CLOUD_NAME, "
                "CLOUDINARY_API_KEY, and CLOUDINARY_API_SECRET, or use an image URL "
                "instead of uploading a file.",
                400,
            )

        if not data:
            raise self._fail("No image data provided", 400)

        if len(data) > self.config.max_upload_bytes:
            limit_mb = self.config.max_upload_bytes // (1024 * 1024)
            raise self._fail(f"File too large. Maximum size is {limit_mb}MB.", 400)

        target_folder = folder or self.config.folder
        form = self._signed(
            {"folder": target_folder, "transformation": INCOMING_TRANSFORMATION}
        )

        logger.info(f"Uploading {len(data)} bytes to Cloudinary folder {target_folder}")
        started = time.monotonic()

        try:
            async with httpx.AsyncClient(timeout=self.config.timeout_seconds) as client:
                response = await client.post(
                    f"{self.base_url}/upload",
                    data=form,
                    files={"file": ("upload", data)},
                )
        except httpx.RequestError as e:
            logger.error(f"Cloudinary upload request failed: {e}")
            raise self._fail(f"Failed to upload image: {e}", 500) from e

        if response.status_code in (401, 403):
            logger.error(f"Cloudinary rejected credentials: {_error_message(response)}")
            raise self._fail(
                "Cloudinary authentication failed. Please check your API credentials.", 400
            )

        if response.status_code == 400:
            message = _error_message(response)
            logger.error(f"Cloudinary rejected the image: {message}")
            raise self._fail(f"Invalid image: {message}", 400)

        if response.status_code != 200:
            message = _error_message(response)
            logger.error(f"Cloudinary upload failed: {response.status_code} {message}")
            raise self._fail(f"Failed to upload image: {message}", 500)

        body = response.json()
        duration = time.monotonic() - started
        record_upload_duration(duration)
        logger.info(
            f"Uploaded image {body['public_id']} ({body.get('bytes', len(data))} bytes) "
            f"in {duration:.2f}s"
        )

        return UploadResult(url=body["secure_url"], handle=body["public_id"])

    @traced("image_store.delete")
    async def delete(self, handle: str | None) -> CleanupResult:
        """Destroy a Cloudinary asset by public_id.

        Args:
            handle: public_id returned by upload

        Returns:
            CleanupResult: success for deleted or already-absent assets
        """
        if not handle:
            return CleanupResult(handle=handle, success=True)

        if not self.is_configured:
            return CleanupResult(
                handle=handle, success=False, error_message="Cloudinary is not configured"
            )

        try:
            async with httpx.AsyncClient(timeout=self.config.timeout_seconds) as client:
                response = await client.post(
                    f"{self.base_url}/destroy",
                    data=self._signed({"public_id": handle}),
                )
        except httpx.RequestError as e:
            return CleanupResult(handle=handle, success=False, error_message=str(e))

        if response.status_code != 200:
            return CleanupResult(
                handle=handle,
                success=False,
                error_message=f"HTTP {response.status_code}: {_error_message(response)}",
            )

        result = response.json().get("result")
        if result in ("ok", "not found"):
            logger.info(f"Deleted Cloudinary image {handle} ({result})")
            return CleanupResult(handle=handle, success=True)

        return CleanupResult(
            handle=handle, success=False, error_message=f"Unexpected result: {result}"
        )
