"""Unit tests for Cloudinary request signing and configuration."""

import hashlib
from unittest.mock import patch

import pytest

from restaurant_menu_service.adapters.cloudinary_store import (
    CloudinaryConfig,
    CloudinaryImageStore,
    sign_params,
)


@pytest.mark.unit
class TestSignParams:
    """Test suite for sign_params."""

    def test_params_are_sorted_and_suffixed_with_secret(self) -> None:
        """Test the string-to-sign layout."""
        signature = sign_params(
            {"timestamp": "1315060510", "public_id": "sample_image"}, "abcd"
        )

        expected = hashlib.sha1(b"public_id=sample_image&timestamp=1315060510abcd").hexdigest()
        assert signature == expected

    def test_empty_values_are_skipped(self) -> None:
        """Test that empty parameters do not take part in the signature."""
        with_empty = sign_params({"folder": "", "timestamp": "1"}, "s")
        without = sign_params({"timestamp": "1"}, "s")

        assert with_empty == without


@pytest.mark.unit
class TestCloudinaryConfig:
    """Test suite for CloudinaryConfig."""

    def test_complete_config(self) -> None:
        """Test that real-looking credentials are complete."""
        config = CloudinaryConfig(cloud_name="demo", api_key="key", api_secret="secret")

        assert config.is_complete is True
        assert config.max_upload_bytes == 5 * 1024 * 1024

    @pytest.mark.parametrize(
        ("cloud_name", "api_key", "api_secret"),
        [
            (None, "key", "secret"),
            ("demo", "", "secret"),
            ("demo", "key", None),
            ("your_cloud_name", "key", "secret"),
            ("demo", "key", "your_api_secret"),
        ],
    )
    def test_incomplete_config(
        self, cloud_name: str | None, api_key: str | None, api_secret: str | None
    ) -> None:
        """Test that missing or placeholder credentials are incomplete."""
        config = CloudinaryConfig(cloud_name=cloud_name, api_key=api_key, api_secret=api_secret)

        assert config.is_complete is False


@pytest.mark.unit
class TestSignedRequest:
    """Test suite for signed request parameters."""

    @patch("restaurant_menu_service.adapters.cloudinary_store.time.time", return_value=1700000000)
    def test_signed_adds_timestamp_signature_and_key(self, mock_time) -> None:
        """Test that the api key is added but not signed."""
        store = CloudinaryImageStore(
            CloudinaryConfig(cloud_name="demo", api_key="key123", api_secret="secret")
        )

        signed = store._signed({"public_id": "old456"})

        assert signed["timestamp"] == "1700000000"
        assert signed["api_key"] == "key123"
        assert signed["signature"] == sign_params(
            {"public_id": "old456", "timestamp": "1700000000"}, "secret"
        )
