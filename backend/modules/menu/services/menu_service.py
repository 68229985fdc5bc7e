# backend/modules/menu/services/menu_service.py

from typing import Dict, Iterable, List, Optional
import logging

from sqlalchemy.orm import Session

from core.database_utils import atomic
from core.exceptions import NotFoundError
from ..models.menu_models import MenuItem
from ..schemas.menu_schemas import MenuItemCreate, MenuItemUpdate

logger = logging.getLogger(__name__)


class MenuService:
    """Service class for catalog management and stock bookkeeping"""

    def __init__(self, db: Session):
        self.db = db

    def list_available_items(self) -> List[MenuItem]:
        """Items shown on the storefront"""
        return (
            self.db.query(MenuItem)
            .filter(MenuItem.is_available == True)  # noqa: E712
            .order_by(MenuItem.category, MenuItem.name)
            .all()
        )

    def list_items(self, category: Optional[str] = None) -> List[MenuItem]:
        query = self.db.query(MenuItem)
        if category:
            query = query.filter(MenuItem.category == category)
        return query.order_by(MenuItem.created_at.desc(), MenuItem.id.desc()).all()

    def get_item(self, item_id: int) -> MenuItem:
        item = self.db.query(MenuItem).filter(MenuItem.id == item_id).first()
        if not item:
            raise NotFoundError("Menu item not found")
        return item

    def get_items_by_ids(self, item_ids: Iterable[int]) -> Dict[int, MenuItem]:
        ids = set(item_ids)
        if not ids:
            return {}
        items = self.db.query(MenuItem).filter(MenuItem.id.in_(ids)).all()
        return {item.id: item for item in items}

    def create_item(self, item_data: MenuItemCreate) -> MenuItem:
        item = MenuItem(**item_data.model_dump())
        with atomic(self.db, "create menu item"):
            self.db.add(item)
        self.db.refresh(item)
        logger.info(f"Created menu item {item.name} (id={item.id})")
        return item

    def update_item(self, item_id: int, item_data: MenuItemUpdate) -> MenuItem:
        item = self.get_item(item_id)
        update_data = item_data.model_dump(exclude_unset=True)
        with atomic(self.db, "update menu item"):
            for field, value in update_data.items():
                setattr(item, field, value)
        self.db.refresh(item)
        logger.info(f"Updated menu item {item.id}: {sorted(update_data)}")
        return item

    def delete_item(self, item_id: int) -> None:
        """Hard delete; order lines keep their denormalized name and price."""
        item = self.get_item(item_id)
        with atomic(self.db, "delete menu item"):
            self.db.delete(item)
        logger.info(f"Deleted menu item {item_id}")

    def decrement_stock(self, item_id: int, quantity: int) -> bool:
        """
        Conditionally take ``quantity`` units from a limited-stock item.

        Runs a single ``UPDATE ... WHERE stock >= quantity`` so concurrent
        confirmations cannot overdraw. Does not commit; the caller owns the
        transaction. Returns False when the stock was insufficient.
        """
        updated = (
            self.db.query(MenuItem)
            .filter(
                MenuItem.id == item_id,
                MenuItem.unlimited_stock == False,  # noqa: E712
                MenuItem.stock >= quantity,
            )
            .update(
                {MenuItem.stock: MenuItem.stock - quantity},
                synchronize_session=False,
            )
        )
        return updated == 1

    def count_low_stock(self, threshold: int) -> int:
        return (
            self.db.query(MenuItem)
            .filter(
                MenuItem.unlimited_stock == False,  # noqa: E712
                MenuItem.stock < threshold,
            )
            .count()
        )
