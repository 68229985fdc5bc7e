from sqlalchemy import (Boolean, CheckConstraint, Column, ForeignKey, Integer,
                        Numeric, String)
from sqlalchemy.orm import relationship

from core.database import Base
from core.mixins import TimestampMixin
from ..enums.order_enums import OrderStatus


class Order(Base, TimestampMixin):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    invoice_number = Column(String(32), nullable=False, unique=True, index=True)
    total_amount = Column(Numeric(10, 2), nullable=False)
    status = Column(
        String(20), nullable=False, default=OrderStatus.PENDING.value, index=True
    )
    is_walk_in = Column(Boolean, nullable=False, default=False)
    payment_method = Column(String(10), nullable=True)
    # Set once the order has consumed stock; never cleared by status edits
    stock_deducted = Column(Boolean, nullable=False, default=False)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    order_items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )
    user = relationship("User", back_populates="orders")

    @property
    def customer_name(self):
        if self.user is not None:
            return self.user.name
        return "Walk-in" if self.is_walk_in else None

    @property
    def customer_email(self):
        return self.user.email if self.user is not None else None

    def __repr__(self):
        return (
            f"<Order(id={self.id}, invoice='{self.invoice_number}', "
            f"status='{self.status}')>"
        )


class OrderItem(Base):
    __tablename__ = "order_items"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    menu_item_id = Column(
        Integer,
        ForeignKey("menu_items.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    # Snapshot of the catalog entry at checkout
    name = Column(String(200), nullable=False)
    price_at_time = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False)

    order = relationship("Order", back_populates="order_items")

    @property
    def line_total(self):
        return self.price_at_time * self.quantity


class InvoiceCounter(Base):
    """Last invoice sequence number handed out per business day"""
    __tablename__ = "invoice_counters"

    day = Column(String(8), primary_key=True)
    last_value = Column(Integer, nullable=False, default=0)
