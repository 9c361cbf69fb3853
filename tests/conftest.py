"""Shared pytest fixtures and configuration for all tests."""

import os

# Keep src/main.py from building the real application on import
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import UTC, datetime  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402

from restaurant_menu_service.models.menu_models import (  # noqa: E402
    Category,
    LocalizedText,
    MenuItem,
)


@pytest.fixture
def mock_item_id() -> str:
    """Fixture providing a standard test item ID."""
    return "item_123456"


@pytest.fixture
def sample_item(mock_item_id: str) -> MenuItem:
    """Fixture providing a stored appetizer without an uploaded image."""
    created = datetime(2024, 1, 15, 10, 30, tzinfo=UTC)
    return MenuItem(
        id=mock_item_id,
        name=LocalizedText(en="Hummus", ar="حمص"),
        description=LocalizedText(en="Classic dip", ar="غموس كلاسيكي"),
        price=25,
        category=Category.APPETIZERS,
        created_at=created,
        updated_at=created,
    )


@pytest.fixture
def uploaded_item(sample_item: MenuItem) -> MenuItem:
    """Fixture providing a stored item whose image was uploaded to Cloudinary."""
    return sample_item.model_copy(
        update={
            "image": "https://res.cloudinary.com/demo/image/upload/old456.png",
            "image_handle": "old456",
        }
    )


@pytest.fixture
def mock_dynamodb_item() -> dict:
    """Fixture providing a raw DynamoDB record as boto3 returns it."""
    return {
        "id": "item_123456",
        "name": {"en": "Mixed Grill", "ar": "مشاوي مشكلة"},
        "description": {"en": "Kebab, kofta and chicken", "ar": "كباب وكفتة ودجاج"},
        "price": Decimal("120"),
        "image": "https://res.cloudinary.com/demo/image/upload/grill.png",
        "image_handle": "sisters-restaurant/grill",
        "category": "grills",
        "created_at": "2024-01-15T10:30:00+00:00",
        "updated_at": "2024-01-16T08:00:00+00:00",
    }
