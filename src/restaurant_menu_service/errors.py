"""Exception hierarchy for the menu service.

Each error carries the HTTP status code the API layer should answer with,
so route handlers never have to translate exceptions one by one.
"""


class MenuServiceError(Exception):
    """Base class for all expected menu service failures."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class MenuValidationError(MenuServiceError):
    """Bad category, price or text fields."""

    status_code = 400


class MissingFieldsError(MenuValidationError):
    """A create request lacks one of the required fields."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(f"Missing required fields: {', '.join(missing)}")


class InvalidCategoryError(MenuValidationError):
    """Category is not one of the six menu sections."""

    def __init__(self, category: str) -> None:
        self.category = category
        super().__init__(f"Invalid category: {category}")


class CategoryMismatchError(MenuServiceError):
    """Path category does not match the stored item's category."""

    status_code = 400

    def __init__(self, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Category mismatch: item is in '{actual}', not '{expected}'")


class MenuItemNotFoundError(MenuServiceError):
    status_code = 404

    def __init__(self, item_id: str) -> None:
        self.item_id = item_id
        super().__init__(f"Item not found: {item_id}")


class UploadError(MenuServiceError):
    """Image upload failed.

    Misconfiguration and bad input use 400, remote failures use 500.
    """

    status_code = 500


class PersistenceError(MenuServiceError):
    """The document database rejected or failed an operation."""

    status_code = 500
