"""Custom metrics for the menu service."""

from opentelemetry import metrics

meter = metrics.get_meter("menu-svc")

menu_item_changes_counter = meter.create_counter(
    name="menu_item_changes_total",
    description="Menu item creates, updates and deletes by category",
    unit="1",
)

image_upload_duration_histogram = meter.create_histogram(
    name="image_upload_duration_seconds",
    description="Duration of image uploads to the image host",
    unit="s",
)

image_upload_failure_counter = meter.create_counter(
    name="image_upload_failure_total",
    description="Total number of failed image uploads by cause",
    unit="1",
)

image_cleanup_failure_counter = meter.create_counter(
    name="image_cleanup_failure_total",
    description="Superseded or orphaned images the image host failed to delete",
    unit="1",
)


def record_item_change(operation: str, category: str) -> None:
    """Record a successful write to a menu item.

    Args:
        operation: "create", "update" or "delete"
        category: Category the item ended up in
    """
    menu_item_changes_counter.add(1, {"operation": operation, "category": category})


def record_upload_duration(duration_seconds: float) -> None:
    """Record how long a successful image upload took.

    Args:
        duration_seconds: Duration in seconds
    """
    image_upload_duration_histogram.record(duration_seconds)


def record_upload_failure(status_code: int) -> None:
    """Record a failed image upload.

    Args:
        status_code: HTTP status the failure maps to (400 or 500)
    """
    image_upload_failure_counter.add(1, {"status_code": status_code})


def record_cleanup_failure(reason: str) -> None:
    """Record a best-effort image deletion that did not succeed.

    Args:
        reason: Why the deletion was attempted ("replace" or "delete")
    """
    image_cleanup_failure_counter.add(1, {"reason": reason})
