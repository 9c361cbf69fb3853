"""FastAPI application for the menu API, image uploads and dashboard."""

import logging
import os
import re
from pathlib import Path

from fastapi import Body, FastAPI, File, Request, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel

from restaurant_menu_service.adapters.base_image_store import ImageStore
from restaurant_menu_service.adapters.cloudinary_store import DEFAULT_MAX_UPLOAD_BYTES
from restaurant_menu_service.errors import MenuServiceError, UploadError
from restaurant_menu_service.models.menu_models import (
    DeleteResponse,
    MenuItem,
    MenuItemCreate,
    MenuItemUpdate,
    UploadResult,
)
from restaurant_menu_service.services.dashboard_service import DashboardPresenter
from restaurant_menu_service.services.menu_service import MenuService

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

ALLOWED_IMAGE_TYPES = re.compile(r"jpeg|jpg|png|gif|webp")


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str


def is_allowed_image(filename: str | None, content_type: str | None) -> bool:
    """Check both the file extension and the MIME type against the image types.

    Args:
        filename: Client-supplied file name
        content_type: Client-supplied MIME type

    Returns:
        bool: True if both look like a supported image
    """
    extension = os.path.splitext((filename or "").lower())[1]
    return bool(
        ALLOWED_IMAGE_TYPES.search(extension)
        and ALLOWED_IMAGE_TYPES.search((content_type or "").lower())
    )


def create_app(
    menu_service: MenuService,
    dashboard_presenter: DashboardPresenter,
    image_store: ImageStore,
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        menu_service: Service for menu item operations
        dashboard_presenter: View model for the dashboard page
        image_store: Image host adapter for uploads
        max_upload_bytes: Largest accepted upload

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="Restaurant Menu Service",
        description="Menu management API with image uploads and a dashboard",
        version="1.0.0",
    )

    # Store services in app state for access in route handlers
    app.state.menu_service = menu_service
    app.state.dashboard_presenter = dashboard_presenter
    app.state.image_store = image_store
    app.state.max_upload_bytes = max_upload_bytes

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

    @app.exception_handler(MenuServiceError)
    async def menu_error_handler(request: Request, exc: MenuServiceError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        else:
            logger.info(f"{request.method} {request.url.path} rejected: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.info(f"{request.method} {request.url.path} invalid body: {exc.errors()}")
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request", "details": jsonable_encoder(exc.errors())},
        )

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(status="healthy")

    @app.get("/api/menu", response_model=dict[str, list[MenuItem]], tags=["Menu"])
    async def get_menu() -> dict[str, list[MenuItem]]:
        """All menu items grouped by category, newest first."""
        grouped: dict[str, list[MenuItem]] = await app.state.menu_service.list_grouped()
        return grouped

    @app.get("/api/menu/{category}", response_model=list[MenuItem], tags=["Menu"])
    async def get_category(category: str) -> list[MenuItem]:
        """Menu items of one category, newest first."""
        items: list[MenuItem] = await app.state.menu_service.list_category(category)
        return items

    @app.post(
        "/api/menu/{category}",
        response_model=MenuItem,
        status_code=201,
        tags=["Menu"],
    )
    async def add_menu_item(category: str, payload: MenuItemCreate = Body(...)) -> MenuItem:
        """Create a menu item in the given category."""
        item: MenuItem = await app.state.menu_service.create_item(category, payload)
        return item

    @app.put("/api/menu/{category}/{item_id}", response_model=MenuItem, tags=["Menu"])
    async def update_menu_item(
        category: str, item_id: str, payload: MenuItemUpdate = Body(...)
    ) -> MenuItem:
        """Update a menu item; a ``category`` in the body moves it."""
        logger.info(f"Update request for {category}/{item_id}")
        item: MenuItem = await app.state.menu_service.update_item(category, item_id, payload)
        return item

    @app.delete(
        "/api/menu/{category}/{item_id}", response_model=DeleteResponse, tags=["Menu"]
    )
    async def delete_menu_item(category: str, item_id: str) -> DeleteResponse:
        """Delete a menu item and its uploaded image."""
        logger.info(f"Delete request for {category}/{item_id}")
        await app.state.menu_service.delete_item(category, item_id)
        return DeleteResponse(message="Item deleted successfully")

    @app.post("/api/upload", response_model=UploadResult, tags=["Upload"])
    async def upload_image(image: UploadFile | None = File(None)) -> UploadResult:
        """Upload an image file (multipart field ``image``) to the image host.

        Raises:
            UploadError: 400 for a missing, non-image or oversized file
        """
        if image is None:
            raise UploadError("No image file provided", status_code=400)

        logger.info(
            f"Upload received: {image.filename} ({image.content_type}, {image.size} bytes)"
        )

        if not is_allowed_image(image.filename, image.content_type):
            raise UploadError("Only image files are allowed!", status_code=400)

        limit = app.state.max_upload_bytes
        data = await image.read(limit + 1)
        if len(data) > limit:
            raise UploadError(
                f"File too large. Maximum size is {limit // (1024 * 1024)}MB.", status_code=400
            )

        result: UploadResult = await app.state.image_store.upload(data)
        return result

    @app.get("/dashboard", response_class=HTMLResponse, tags=["Dashboard"])
    async def render_dashboard(request: Request) -> HTMLResponse:
        """Server-rendered view of the whole menu."""
        context = await app.state.dashboard_presenter.build_context()
        return templates.TemplateResponse(request, "dashboard.html", context)

    return app
