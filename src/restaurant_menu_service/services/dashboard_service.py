"""Read-only view model for the server-rendered dashboard."""

import logging

from restaurant_menu_service.errors import PersistenceError
from restaurant_menu_service.models.menu_models import Category
from restaurant_menu_service.repositories.menu_repository import MenuItemRepository
from restaurant_menu_service.services.menu_service import GroupedMenu, empty_menu, group_by_category

logger = logging.getLogger(__name__)

CATEGORY_TITLES: dict[Category, dict[str, str]] = {
    Category.APPETIZERS: {"en": "Appetizers", "ar": "المقبلات"},
    Category.MAIN_DISHES: {"en": "Main Dishes", "ar": "الأطباق الرئيسية"},
    Category.GRILLS: {"en": "Grills", "ar": "المشويات"},
    Category.DESSERTS: {"en": "Desserts", "ar": "الحلويات"},
    Category.BEVERAGES: {"en": "Beverages", "ar": "المشروبات"},
    Category.SANDWICHES: {"en": "Sandwiches", "ar": "السندويشات"},
}


class DashboardPresenter:
    """Assembles the grouped menu the dashboard template renders."""

    def __init__(self, repository: MenuItemRepository) -> None:
        self.repository = repository

    async def build_menu(self) -> GroupedMenu:
        """Group all items, newest first.

        The dashboard always renders: a database failure yields six empty
        buckets instead of an error page.
        """
        try:
            items = self.repository.find_all(newest_first=True)
        except PersistenceError as e:
            logger.error(f"Error loading dashboard: {e}")
            return empty_menu()

        return group_by_category(items)

    async def build_context(self) -> dict:
        """Template context for dashboard.html."""
        menu = await self.build_menu()
        return {
            "menu_data": menu,
            "category_titles": {
                category.value: titles for category, titles in CATEGORY_TITLES.items()
            },
            "item_count": sum(len(items) for items in menu.values()),
        }
