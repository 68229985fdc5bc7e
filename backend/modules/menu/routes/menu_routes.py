from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from core.auth import Caller, require_admin
from core.database import get_db
from ..schemas.menu_schemas import (
    MenuItem,
    MenuItemCreate,
    MenuItemListResponse,
    MenuItemUpdate,
)
from ..services.menu_service import MenuService


router = APIRouter(tags=["Menu"])


def get_menu_service(db: Session = Depends(get_db)) -> MenuService:
    return MenuService(db)


# ========== Storefront ==========

@router.get("/menu", response_model=MenuItemListResponse)
async def get_menu(menu_service: MenuService = Depends(get_menu_service)):
    """Available items, grouped by category order."""
    return {"success": True, "data": menu_service.list_available_items()}


@router.get("/menu/{item_id}", response_model=MenuItem)
async def get_menu_item(
    item_id: int, menu_service: MenuService = Depends(get_menu_service)
):
    return menu_service.get_item(item_id)


# ========== Admin catalog ==========

@router.get("/admin/menu", response_model=List[MenuItem])
async def list_menu_items(
    category: Optional[str] = Query(None),
    current_user: Caller = Depends(require_admin),
    menu_service: MenuService = Depends(get_menu_service),
):
    return menu_service.list_items(category)


@router.post(
    "/admin/menu", response_model=MenuItem, status_code=status.HTTP_201_CREATED
)
async def create_menu_item(
    item_data: MenuItemCreate,
    current_user: Caller = Depends(require_admin),
    menu_service: MenuService = Depends(get_menu_service),
):
    return menu_service.create_item(item_data)


@router.put("/admin/menu/{item_id}", response_model=MenuItem)
async def update_menu_item(
    item_id: int,
    item_data: MenuItemUpdate,
    current_user: Caller = Depends(require_admin),
    menu_service: MenuService = Depends(get_menu_service),
):
    return menu_service.update_item(item_id, item_data)


@router.delete("/admin/menu/{item_id}")
async def delete_menu_item(
    item_id: int,
    current_user: Caller = Depends(require_admin),
    menu_service: MenuService = Depends(get_menu_service),
):
    menu_service.delete_item(item_id)
    return {"success": True, "message": "Menu item deleted"}
