# backend/modules/menu/models/menu_models.py

from sqlalchemy import (Boolean, CheckConstraint, Column, Integer, Numeric,
                        String, Text)

from core.database import Base
from core.mixins import TimestampMixin


class MenuItem(Base, TimestampMixin):
    """Sellable canteen item with its remaining stock"""
    __tablename__ = "menu_items"
    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_menu_items_stock_non_negative"),
        CheckConstraint("price > 0", name="ck_menu_items_price_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False, index=True)
    price = Column(Numeric(10, 2), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True, index=True)
    image = Column(String(500), nullable=True)

    # Stock is ignored entirely when unlimited_stock is set
    stock = Column(Integer, nullable=False, default=0)
    unlimited_stock = Column(Boolean, nullable=False, default=False)
    is_available = Column(Boolean, nullable=False, default=True, index=True)

    def has_stock_for(self, quantity: int) -> bool:
        return self.unlimited_stock or self.stock >= quantity

    def __repr__(self):
        return f"<MenuItem(id={self.id}, name='{self.name}', price={self.price})>"
