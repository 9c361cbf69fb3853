"""Menu service holding the business rules for menu items."""

import logging
from collections.abc import Iterable
from typing import Any

from restaurant_menu_service.adapters.base_image_store import CleanupResult, ImageStore
from restaurant_menu_service.errors import CategoryMismatchError, MissingFieldsError
from restaurant_menu_service.models.menu_models import (
    DEFAULT_IMAGE_URL,
    Category,
    MenuItem,
    MenuItemCreate,
    MenuItemUpdate,
    coerce_price,
)
from restaurant_menu_service.observability.decorators import traced
from restaurant_menu_service.observability.metrics import (
    record_cleanup_failure,
    record_item_change,
)
from restaurant_menu_service.repositories.menu_repository import MenuItemRepository

logger = logging.getLogger(__name__)

GroupedMenu = dict[str, list[MenuItem]]


def empty_menu() -> GroupedMenu:
    """Return the six category buckets, all empty, in display order."""
    return {category.value: [] for category in Category}


def group_by_category(items: Iterable[MenuItem]) -> GroupedMenu:
    """Partition items into the six category buckets.

    Input order is preserved inside each bucket. Items whose category is not
    one of the six are dropped; this never raises.

    Args:
        items: Items to group

    Returns:
        dict: Exactly six keys, one list per category
    """
    grouped = empty_menu()
    for item in items:
        category = getattr(item, "category", None)
        key = category.value if isinstance(category, Category) else category
        bucket = grouped.get(key) if isinstance(key, str) else None
        if bucket is not None:
            bucket.append(item)
    return grouped


class MenuService:
    """Service for creating, listing, updating and deleting menu items.

    Coordinates the item repository with the image store so that replacing
    or deleting an uploaded image also releases it on the image host.
    """

    def __init__(self, repository: MenuItemRepository, image_store: ImageStore) -> None:
        """Initialize the MenuService.

        Args:
            repository: Repository for menu items
            image_store: Image host adapter used for cleanup
        """
        self.repository = repository
        self.image_store = image_store

    async def list_grouped(self) -> GroupedMenu:
        """All items, newest first, grouped by category."""
        return group_by_category(self.repository.find_all(newest_first=True))

    async def list_category(self, category: str) -> list[MenuItem]:
        """Items in one category, newest first.

        Raises:
            InvalidCategoryError: If category is not one of the six sections
        """
        return self.repository.find_by_category(category)

    @traced("menu.create_item")
    async def create_item(self, category: str, payload: MenuItemCreate) -> MenuItem:
        """Create a menu item in a category.

        Args:
            category: Path category
            payload: Request body

        Returns:
            MenuItem: The stored item

        Raises:
            MissingFieldsError: If name, description or price is absent
            InvalidCategoryError: If category is not one of the six sections
            MenuValidationError: If price is not a non-negative number
        """
        missing = [
            field
            for field in ("name", "description", "price")
            if getattr(payload, field) is None
        ]
        if missing:
            raise MissingFieldsError(missing)

        section = Category.parse(category)

        # A handle only belongs with the uploaded URL it came from
        image_handle = payload.image_handle if payload.image else None
        if payload.image_handle and image_handle is None:
            logger.warning(
                f"Ignoring cloudinaryId {payload.image_handle} sent without an image URL"
            )

        item = self.repository.create(
            {
                "name": payload.name,
                "description": payload.description,
                "price": coerce_price(payload.price),
                "image": payload.image or DEFAULT_IMAGE_URL,
                "image_handle": image_handle,
                "category": section,
            }
        )

        logger.info(f"Created menu item {item.id} in {section.value}")
        record_item_change("create", section.value)
        return item

    @traced("menu.update_item")
    async def update_item(
        self, category: str, item_id: str, payload: MenuItemUpdate
    ) -> MenuItem:
        """Apply a partial update, possibly moving the item to another category.

        When a different image replaces one that was uploaded, the old upload
        is deleted from the image host before the write. That deletion is
        best effort.

        Args:
            category: Path category
            item_id: Item identifier
            payload: Request body

        Returns:
            MenuItem: The item as stored after the update

        Raises:
            MenuItemNotFoundError: If no item has this ID
            InvalidCategoryError: If the target category is not valid
            CategoryMismatchError: If no move is requested and the path
                category differs from the stored one
        """
        item = self.repository.find_by_id(item_id)
        changes: dict[str, Any] = {}

        if payload.category and payload.category != category:
            target = Category.parse(payload.category)
            if target != item.category:
                logger.info(f"Moving item {item_id} from {item.category.value} to {target.value}")
            changes["category"] = target
        elif item.category.value != category:
            raise CategoryMismatchError(expected=category, actual=item.category.value)

        if payload.name is not None:
            changes["name"] = payload.name.merge_into(item.name)

        if payload.description is not None:
            changes["description"] = payload.description.merge_into(item.description)

        if payload.price is not None:
            changes["price"] = coerce_price(payload.price)

        if payload.image:
            if payload.image != item.image:
                if item.image_handle:
                    await self._release_image(item.image_handle, reason="replace")
                changes["image_handle"] = payload.image_handle
            else:
                # Unchanged image keeps the handle it was uploaded with
                changes["image_handle"] = item.image_handle
            changes["image"] = payload.image

        updated = self.repository.update(item_id, changes)

        logger.info(f"Updated menu item {item_id}")
        record_item_change("update", updated.category.value)
        return updated

    @traced("menu.delete_item")
    async def delete_item(self, category: str, item_id: str) -> bool:
        """Delete an item and release its uploaded image.

        Raises:
            MenuItemNotFoundError: If no item has this ID
            CategoryMismatchError: If the path category differs from the stored one
        """
        item = self.repository.find_by_id(item_id)

        if item.category.value != category:
            raise CategoryMismatchError(expected=category, actual=item.category.value)

        if item.image_handle:
            await self._release_image(item.image_handle, reason="delete")

        self.repository.delete(item_id)

        logger.info(f"Deleted menu item {item_id} from {category}")
        record_item_change("delete", category)
        return True

    async def _release_image(self, handle: str, reason: str) -> CleanupResult:
        """Delete an uploaded image, logging instead of raising on failure."""
        try:
            result = await self.image_store.delete(handle)
        except Exception as e:
            result = CleanupResult(handle=handle, success=False, error_message=str(e))

        if not result.success:
            logger.warning(
                f"Failed to delete image {handle} from {self.image_store.provider_name}: "
                f"{result.error_message}"
            )
            record_cleanup_failure(reason)
        return result
