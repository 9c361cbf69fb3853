"""Main application entry point for the restaurant menu service.

This module provides the FastAPI application factory and configuration
for running the service locally or in production.
"""

import logging
import os
import threading
from typing import Any

import boto3
from fastapi import FastAPI

from restaurant_menu_service.adapters.cloudinary_store import (
    DEFAULT_FOLDER,
    DEFAULT_MAX_UPLOAD_BYTES,
    CloudinaryConfig,
    CloudinaryImageStore,
)
from restaurant_menu_service.errors import PersistenceError
from restaurant_menu_service.handlers.api_handler import create_app
from restaurant_menu_service.observability import configure_logging, setup_observability
from restaurant_menu_service.repositories.menu_repository import MenuItemRepository
from restaurant_menu_service.services.dashboard_service import DashboardPresenter
from restaurant_menu_service.services.menu_service import MenuService

logger = logging.getLogger(__name__)

DEFAULT_LOCAL_ENDPOINT = "http://localhost:8000"


def is_production() -> bool:
    return os.getenv("ENVIRONMENT", "development") == "production"


def get_dynamodb_resource() -> Any:
    """Create DynamoDB resource with appropriate configuration.

    Outside production a missing DYNAMODB_ENDPOINT falls back to a local
    DynamoDB on localhost:8000.

    Returns:
        Boto3 DynamoDB resource configured for environment
    """
    endpoint_url = os.getenv("DYNAMODB_ENDPOINT")
    region = os.getenv("AWS_REGION", "us-east-1")

    if not endpoint_url and not is_production():
        logger.warning(
            f"DYNAMODB_ENDPOINT not set, using default local endpoint {DEFAULT_LOCAL_ENDPOINT}"
        )
        endpoint_url = DEFAULT_LOCAL_ENDPOINT

    if endpoint_url:
        # Local DynamoDB accepts any credentials
        logger.info(f"Using local DynamoDB at {endpoint_url}")
        return boto3.resource(
            "dynamodb",
            endpoint_url=endpoint_url,
            region_name=region,
            aws_access_key_id=os.getenv("AWS_ACCESS_KEY_ID", "local"),
            aws_secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY", "local"),
        )

    logger.info(f"Using AWS DynamoDB in region {region}")
    # Production - boto3 uses the default credential chain (IAM role, env vars, etc.)
    return boto3.resource("dynamodb", region_name=region)


def create_image_store() -> CloudinaryImageStore:
    """Create the Cloudinary adapter from environment variables.

    Missing credentials are not fatal: the adapter is still created and
    uploads answer with a descriptive 400.
    """
    config = CloudinaryConfig(
        cloud_name=os.getenv("CLOUDINARY_CLOUD_NAME"),
        api_key=os.getenv("CLOUDINARY_API_KEY"),
        api_secret=os.getenv("CLOUDINARY_API_SECRET"),
        folder=os.getenv("CLOUDINARY_FOLDER", DEFAULT_FOLDER),
        max_upload_bytes=int(os.getenv("MAX_UPLOAD_BYTES", str(DEFAULT_MAX_UPLOAD_BYTES))),
    )
    store = CloudinaryImageStore(config=config)

    if store.is_configured:
        logger.info(f"Cloudinary configured for cloud {config.cloud_name}")
    else:
        logger.warning("Cloudinary credentials not configured - image uploads will fail")

    return store


def connect_database(repository: MenuItemRepository, retry_delay_seconds: float = 5.0) -> bool:
    """Check that the menu table is reachable.

    In production an unreachable database is fatal. Elsewhere the service
    starts anyway and one more check is scheduled after a delay.

    Args:
        repository: Repository whose table to check
        retry_delay_seconds: Delay before the single retry

    Returns:
        bool: True if the first check succeeded

    Raises:
        PersistenceError: In production, when the table is unreachable
    """
    try:
        repository.check_connection()
        logger.info(f"Connected to DynamoDB table {repository.table_name}")
        return True
    except PersistenceError as e:
        if is_production():
            logger.critical(f"Error connecting to DynamoDB: {e}")
            raise

        logger.warning(
            f"Error connecting to DynamoDB: {e}. "
            f"Retrying in {retry_delay_seconds:g} seconds; server continues without database."
        )

    def retry() -> None:
        try:
            repository.check_connection()
            logger.info(f"Connected to DynamoDB table {repository.table_name} on retry")
        except PersistenceError as e:
            logger.warning(f"Retry failed, server continues without database: {e}")

    timer = threading.Timer(retry_delay_seconds, retry)
    timer.daemon = True
    timer.start()
    return False


def create_application() -> FastAPI:
    """Create and configure the FastAPI application with all dependencies.

    This factory function:
    1. Configures logging
    2. Creates the DynamoDB resource and repository
    3. Checks database connectivity
    4. Configures the image store
    5. Creates services
    6. Creates the FastAPI app and sets up observability

    Returns:
        Configured FastAPI application instance
    """
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))

    logger.info("Initializing restaurant menu service...")

    dynamodb_resource = get_dynamodb_resource()
    table_name = os.getenv("DYNAMODB_MENU_ITEMS_TABLE", "restaurant-menu-items")
    repository = MenuItemRepository(dynamodb_resource=dynamodb_resource, table_name=table_name)

    logger.info(f"Repository configured - table: {table_name}")

    connect_database(
        repository, retry_delay_seconds=float(os.getenv("DB_RETRY_DELAY_SECONDS", "5"))
    )

    image_store = create_image_store()

    menu_service = MenuService(repository=repository, image_store=image_store)
    dashboard_presenter = DashboardPresenter(repository=repository)

    logger.info("Services initialized")

    app = create_app(
        menu_service=menu_service,
        dashboard_presenter=dashboard_presenter,
        image_store=image_store,
        max_upload_bytes=image_store.config.max_upload_bytes,
    )

    setup_observability(app)

    logger.info("Restaurant menu service initialized successfully")

    return app


# Create the FastAPI application instance (only when not in test mode)
# This prevents the app from being created during test collection
if os.getenv("ENVIRONMENT") != "test":  # noqa: SIM108
    app = create_application()
else:
    # Create a placeholder app for test imports
    app = FastAPI()


if __name__ == "__main__":
    """Run the application with uvicorn when executed directly."""
    import uvicorn

    port = int(os.getenv("PORT", "3003"))
    host = os.getenv("HOST", "0.0.0.0")

    logger.info(f"Starting server on {host}:{port}")
    logger.info(f"Dashboard available at http://{host}:{port}/dashboard")

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=not is_production(),
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
