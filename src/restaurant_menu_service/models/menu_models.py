"""Menu data models.

MenuItem is the only stored entity. Request models accept the loose shapes
the dashboard sends (plain strings or locale objects for text fields) and
normalize them into the canonical bilingual form.
"""

import math
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from restaurant_menu_service.errors import InvalidCategoryError, MenuValidationError

DEFAULT_IMAGE_URL = (
    "https://images.unsplash.com/photo-1546069901-ba9599a7e63c?w=400&h=300&fit=crop"
)


class Category(str, Enum):
    """The six fixed menu sections, in display order."""

    APPETIZERS = "appetizers"
    MAIN_DISHES = "mainDishes"
    GRILLS = "grills"
    DESSERTS = "desserts"
    BEVERAGES = "beverages"
    SANDWICHES = "sandwiches"

    @classmethod
    def parse(cls, value: str) -> "Category":
        """Look up a category by its wire value.

        Raises:
            InvalidCategoryError: If value is not one of the six sections
        """
        try:
            return cls(value)
        except ValueError:
            raise InvalidCategoryError(str(value)) from None


def _replicate_plain_text(data: Any) -> Any:
    # A bare string means "same text in both locales"
    if isinstance(data, str):
        return {"en": data, "ar": data}
    return data


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class LocalizedText(BaseModel):
    """Bilingual text with both locales required and non-empty."""

    model_config = ConfigDict(str_strip_whitespace=True)

    en: str = Field(..., min_length=1, description="English text")
    ar: str = Field(..., min_length=1, description="Arabic text")

    @model_validator(mode="before")
    @classmethod
    def accept_plain_text(cls, data: Any) -> Any:
        """Normalize a plain string into both locales."""
        return _replicate_plain_text(data)


class LocalizedTextPatch(BaseModel):
    """Partial bilingual text used by updates.

    A plain string still replaces both locales; an object may carry only one.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    en: str | None = Field(None, min_length=1)
    ar: str | None = Field(None, min_length=1)

    @model_validator(mode="before")
    @classmethod
    def accept_plain_text(cls, data: Any) -> Any:
        """Normalize a plain string into both locales."""
        return _replicate_plain_text(data)

    def merge_into(self, current: LocalizedText) -> LocalizedText:
        """Overlay the supplied locales on an existing value.

        Args:
            current: Stored bilingual value

        Returns:
            LocalizedText: Merged value
        """
        return LocalizedText(
            en=self.en if self.en is not None else current.en,
            ar=self.ar if self.ar is not None else current.ar,
        )


def coerce_price(value: Any) -> int:
    """Convert an incoming price to a whole, non-negative integer.

    Fractional values are truncated, matching how the dashboard has always
    submitted prices.

    Raises:
        MenuValidationError: If the value is not numeric or is negative
    """
    if isinstance(value, bool):
        raise MenuValidationError("Price must be a number")

    if isinstance(value, (int, Decimal)):
        price = int(value)
    elif isinstance(value, float):
        if not math.isfinite(value):
            raise MenuValidationError("Price must be a number")
        price = int(value)
    else:
        text = str(value).strip()
        try:
            price = int(text)
        except ValueError:
            try:
                number = float(text)
            except ValueError:
                raise MenuValidationError(f"Price must be a number, got '{value}'") from None
            if not math.isfinite(number):
                raise MenuValidationError("Price must be a number") from None
            price = int(number)

    if price < 0:
        raise MenuValidationError("Price must be non-negative")
    return price


class MenuItem(BaseModel):
    """Stored menu item.

    Field aliases are the camelCase names the dashboard client has always
    used; FastAPI serializes responses by alias.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Unique identifier for the menu item")
    name: LocalizedText = Field(..., description="Item name")
    description: LocalizedText = Field(..., description="Item description")
    price: int = Field(..., description="Item price in whole currency units", ge=0)
    image: str = Field(default=DEFAULT_IMAGE_URL, description="Image URL")
    image_handle: str | None = Field(
        None, alias="cloudinaryId", description="Remote image handle, if uploaded"
    )
    category: Category = Field(..., description="Menu section")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        item: dict[str, Any] = {
            "id": self.id,
            "name": {"en": self.name.en, "ar": self.name.ar},
            "description": {"en": self.description.en, "ar": self.description.ar},
            "price": self.price,
            "image": self.image,
            "category": self.category.value,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

        if self.image_handle is not None:
            item["image_handle"] = self.image_handle

        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "MenuItem":
        """Create MenuItem from DynamoDB item.

        Args:
            item: DynamoDB item dictionary

        Returns:
            MenuItem: Parsed model instance
        """
        return cls(
            id=item["id"],
            name=LocalizedText(**item["name"]),
            description=LocalizedText(**item["description"]),
            # DynamoDB hands numbers back as Decimal
            price=int(item["price"]),
            image=item.get("image", DEFAULT_IMAGE_URL),
            image_handle=item.get("image_handle"),
            category=Category(item["category"]),
            created_at=datetime.fromisoformat(item["created_at"]),
            updated_at=datetime.fromisoformat(item["updated_at"]),
        )


class MenuItemCreate(BaseModel):
    """Body of a create request.

    Required fields are optional here so that a missing field surfaces as a
    MissingFieldsError from the service rather than a schema error. Price is
    kept raw for coerce_price.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: LocalizedText | None = None
    description: LocalizedText | None = None
    price: Any = None
    image: str | None = None
    image_handle: str | None = Field(None, alias="cloudinaryId")

    @field_validator("name", "description", "price", "image", "image_handle", mode="before")
    @classmethod
    def blank_is_missing(cls, v: Any) -> Any:
        """Treat empty strings as absent."""
        return _blank_to_none(v)


class MenuItemUpdate(BaseModel):
    """Body of an update request; only supplied fields change."""

    model_config = ConfigDict(populate_by_name=True)

    name: LocalizedTextPatch | None = None
    description: LocalizedTextPatch | None = None
    price: Any = None
    image: str | None = None
    image_handle: str | None = Field(None, alias="cloudinaryId")
    category: str | None = Field(None, description="Target category for a move")

    @field_validator(
        "name", "description", "price", "image", "image_handle", "category", mode="before"
    )
    @classmethod
    def blank_is_missing(cls, v: Any) -> Any:
        """Treat empty strings as absent."""
        return _blank_to_none(v)


class UploadResult(BaseModel):
    """Public URL and deletion handle of an uploaded image."""

    model_config = ConfigDict(populate_by_name=True)

    url: str = Field(..., alias="imageUrl")
    handle: str = Field(..., alias="cloudinaryId")


class DeleteResponse(BaseModel):
    message: str
