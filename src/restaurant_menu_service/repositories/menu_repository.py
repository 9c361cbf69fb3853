"""DynamoDB repository for menu items.

Items live in a single table keyed by ``id``. A global secondary index on
``category`` (sorted by ``created_at``) serves the per-category listing.
Expected failures raise the menu service errors rather than returning None.
"""

import logging
import uuid
from datetime import UTC, datetime
from typing import Any

from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError
from mypy_boto3_dynamodb.service_resource import DynamoDBServiceResource, Table
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from restaurant_menu_service.errors import (
    MenuItemNotFoundError,
    MenuValidationError,
    PersistenceError,
)
from restaurant_menu_service.models.menu_models import Category, LocalizedText, MenuItem

logger = logging.getLogger(__name__)

CATEGORY_INDEX = "category-created_at-index"


class MenuItemChanges(BaseModel):
    """Validated set of fields for a partial update."""

    model_config = ConfigDict(extra="forbid")

    name: LocalizedText | None = None
    description: LocalizedText | None = None
    price: int | None = Field(None, ge=0)
    image: str | None = Field(None, min_length=1)
    image_handle: str | None = None
    category: Category | None = None


def _describe_validation_error(error: PydanticValidationError) -> str:
    parts = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"])
        parts.append(f"{location}: {detail['msg']}" if location else detail["msg"])
    return "; ".join(parts)


def _parse_records(raw_items: list[dict[str, Any]]) -> list[MenuItem]:
    """Parse scanned records, skipping any that no longer fit the schema."""
    items = []
    for raw in raw_items:
        try:
            items.append(MenuItem.from_dynamodb_item(raw))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping unreadable menu item {raw.get('id')}: {e}")
    return items


def _is_conditional_failure(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


class MenuItemRepository:
    """Repository for menu item CRUD operations.

    Manages menu item records in DynamoDB with ``id`` as partition key.
    """

    def __init__(self, dynamodb_resource: DynamoDBServiceResource, table_name: str) -> None:
        """Initialize repository.

        Args:
            dynamodb_resource: Boto3 DynamoDB resource
            table_name: Name of the DynamoDB table
        """
        self.dynamodb = dynamodb_resource
        self.table_name = table_name
        self.table: Table = dynamodb_resource.Table(table_name)

    def check_connection(self) -> None:
        """Verify the table is reachable.

        Raises:
            PersistenceError: If the table cannot be described
        """
        try:
            self.table.load()
        except (ClientError, BotoCoreError) as e:
            raise PersistenceError(f"Cannot reach table {self.table_name}: {e}") from e

    def create(self, fields: dict[str, Any]) -> MenuItem:
        """Persist a new menu item.

        Assigns the identifier and timestamps, then validates the full record.

        Args:
            fields: name, description, price, image, image_handle and category

        Returns:
            MenuItem: The stored item

        Raises:
            MenuValidationError: If the record breaks a schema constraint
            PersistenceError: If DynamoDB rejects the write
        """
        now = datetime.now(UTC)
        try:
            item = MenuItem(
                **fields,
                id=uuid.uuid4().hex,
                created_at=now,
                updated_at=now,
            )
        except PydanticValidationError as e:
            raise MenuValidationError(_describe_validation_error(e)) from e

        try:
            self.table.put_item(
                Item=item.to_dynamodb_item(),
                ConditionExpression="attribute_not_exists(id)",
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to save menu item: {e}")
            raise PersistenceError("Failed to add menu item") from e

        return item

    def find_all(self, newest_first: bool = True) -> list[MenuItem]:
        """List every menu item.

        Args:
            newest_first: Order by creation time descending (default) or ascending

        Returns:
            list: All stored items (empty list if none)

        Raises:
            PersistenceError: If the scan fails
        """
        raw_items: list[dict[str, Any]] = []
        scan_kwargs: dict[str, Any] = {}

        try:
            while True:
                response = self.table.scan(**scan_kwargs)
                raw_items.extend(response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                scan_kwargs["ExclusiveStartKey"] = last_key

        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to list menu items: {e}")
            raise PersistenceError("Failed to fetch menu data") from e

        items = _parse_records(raw_items)
        items.sort(key=lambda item: item.created_at, reverse=newest_first)
        return items

    def find_by_category(self, category: str) -> list[MenuItem]:
        """List items in one category, newest first.

        Args:
            category: Category wire value

        Returns:
            list: Items in the category (empty list if none)

        Raises:
            InvalidCategoryError: If category is not one of the six sections
            PersistenceError: If the query fails
        """
        section = Category.parse(category)

        raw_items: list[dict[str, Any]] = []
        query_kwargs: dict[str, Any] = {
            "IndexName": CATEGORY_INDEX,
            "KeyConditionExpression": Key("category").eq(section.value),
            "ScanIndexForward": False,  # Most recent first
        }

        try:
            while True:
                response = self.table.query(**query_kwargs)
                raw_items.extend(response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                query_kwargs["ExclusiveStartKey"] = last_key

        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to list items for category {section.value}: {e}")
            raise PersistenceError("Failed to fetch category items") from e

        return _parse_records(raw_items)

    def find_by_id(self, item_id: str) -> MenuItem:
        """Retrieve a menu item by ID.

        Raises:
            MenuItemNotFoundError: If no item has this ID
            PersistenceError: If the read fails
        """
        try:
            response = self.table.get_item(Key={"id": item_id})
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to get menu item {item_id}: {e}")
            raise PersistenceError("Failed to fetch menu item") from e

        if "Item" not in response:
            raise MenuItemNotFoundError(item_id)

        return MenuItem.from_dynamodb_item(response["Item"])

    def update(self, item_id: str, changes: dict[str, Any]) -> MenuItem:
        """Apply a partial update to an existing item.

        Only the supplied fields change; ``updated_at`` is always refreshed.
        A ``None`` image_handle removes the stored handle.

        Args:
            item_id: Item identifier
            changes: Fields to replace

        Returns:
            MenuItem: The item as stored after the write

        Raises:
            MenuValidationError: If a field breaks a schema constraint
            MenuItemNotFoundError: If no item has this ID
            PersistenceError: If the write fails
        """
        try:
            validated = MenuItemChanges(**changes)
        except PydanticValidationError as e:
            raise MenuValidationError(_describe_validation_error(e)) from e

        values = validated.model_dump(include=set(changes))
        values["updated_at"] = datetime.now(UTC).isoformat()

        set_clauses: list[str] = []
        remove_clauses: list[str] = []
        names: dict[str, str] = {}
        attribute_values: dict[str, Any] = {}

        for field, value in values.items():
            names[f"#{field}"] = field
            if value is None:
                if field != "image_handle":
                    raise MenuValidationError(f"{field} cannot be removed")
                remove_clauses.append(f"#{field}")
                continue
            if isinstance(value, Category):
                value = value.value
            set_clauses.append(f"#{field} = :{field}")
            attribute_values[f":{field}"] = value

        expression = "SET " + ", ".join(set_clauses)
        if remove_clauses:
            expression += " REMOVE " + ", ".join(remove_clauses)

        try:
            response = self.table.update_item(
                Key={"id": item_id},
                UpdateExpression=expression,
                ConditionExpression="attribute_exists(id)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=attribute_values,
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            if _is_conditional_failure(e):
                raise MenuItemNotFoundError(item_id) from e
            logger.error(f"Failed to update menu item {item_id}: {e}")
            raise PersistenceError("Failed to update menu item") from e
        except BotoCoreError as e:
            logger.error(f"Failed to update menu item {item_id}: {e}")
            raise PersistenceError("Failed to update menu item") from e

        return MenuItem.from_dynamodb_item(response["Attributes"])

    def delete(self, item_id: str) -> bool:
        """Delete a menu item.

        Returns:
            bool: True once the item is gone

        Raises:
            MenuItemNotFoundError: If no item has this ID
            PersistenceError: If the delete fails
        """
        try:
            self.table.delete_item(
                Key={"id": item_id},
                ConditionExpression="attribute_exists(id)",
            )
        except ClientError as e:
            if _is_conditional_failure(e):
                raise MenuItemNotFoundError(item_id) from e
            logger.error(f"Failed to delete menu item {item_id}: {e}")
            raise PersistenceError("Failed to delete menu item") from e
        except BotoCoreError as e:
            logger.error(f"Failed to delete menu item {item_id}: {e}")
            raise PersistenceError("Failed to delete menu item") from e

        return True
