# backend/modules/orders/services/order_service.py

"""
Checkout and payment confirmation for canteen orders.

An order is created Pending with its lines priced from the catalog at that
moment. Stock is only consumed when the order becomes Paid: on payment
confirmation, or straight away for a cash walk-in sale. Both paths flip the
order and decrement stock inside one transaction using conditional UPDATEs,
so a concurrent confirmation can neither overdraw an item nor charge the
same order's stock twice.
"""

from collections import OrderedDict
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from core.auth import Caller, ensure_admin
from core.config import settings
from core.database_utils import atomic
from core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from core.mixins import utcnow
from modules.menu.models.menu_models import MenuItem
from modules.menu.services.menu_service import MenuService
from modules.settings.schemas.settings_schemas import PaymentConfig
from ..enums.order_enums import OrderStatus, PaymentMethod
from ..models.order_models import Order, OrderItem
from ..schemas.order_schemas import CartLine, PaymentPayload
from .invoice_service import next_invoice_number
from .payment_service import build_payment_payload

logger = logging.getLogger(__name__)


class OrderService:
    """Service for order checkout, payment and status management"""

    def __init__(self, db: Session, menu_service: Optional[MenuService] = None):
        self.db = db
        self.menu_service = menu_service or MenuService(db)

    # ========== Cart validation ==========

    def _validate_cart(
        self, lines: Sequence[CartLine]
    ) -> Tuple[Dict[int, MenuItem], "OrderedDict[int, int]"]:
        """
        Check every cart line against the catalog.

        Quantities for the same item are summed first, so two lines of 2
        against a stock of 3 are rejected. Raises on the first problem; no
        partial order is ever created.
        """
        if not lines:
            raise ValidationError("Cart is empty")

        requested: "OrderedDict[int, int]" = OrderedDict()
        for line in lines:
            if line.quantity is None or line.quantity <= 0:
                raise ValidationError(f"Invalid quantity for item {line.item_id}")
            requested[line.item_id] = requested.get(line.item_id, 0) + line.quantity

        catalog = self.menu_service.get_items_by_ids(requested.keys())
        for item_id, quantity in requested.items():
            item = catalog.get(item_id)
            if item is None:
                raise NotFoundError(f"Menu item {item_id} not found")
            if not item.is_available:
                raise ConflictError(f"{item.name} is not available")
            if not item.has_stock_for(quantity):
                logger.warning(
                    f"Rejected cart: {item.name} requested {quantity}, stock {item.stock}"
                )
                raise ConflictError(f"Insufficient stock for {item.name}")

        return catalog, requested

    def _build_order(
        self,
        catalog: Dict[int, MenuItem],
        requested: "OrderedDict[int, int]",
        user_id: Optional[int],
        status: OrderStatus,
        is_walk_in: bool,
        payment_method: Optional[PaymentMethod],
    ) -> Order:
        order = Order(
            user_id=user_id,
            status=status.value,
            is_walk_in=is_walk_in,
            payment_method=payment_method.value if payment_method else None,
            stock_deducted=False,
        )
        total = Decimal("0.00")
        for item_id, quantity in requested.items():
            item = catalog[item_id]
            price = Decimal(item.price)
            order.order_items.append(
                OrderItem(
                    menu_item_id=item.id,
                    name=item.name,
                    price_at_time=price,
                    quantity=quantity,
                )
            )
            total += price * quantity
        order.total_amount = total.quantize(Decimal("0.01"))
        return order

    # ========== Stock ==========

    def _deduct_stock(self, order: Order) -> None:
        """Take each line's quantity from stock; caller owns the transaction."""
        for line in order.order_items:
            item = (
                self.db.get(MenuItem, line.menu_item_id)
                if line.menu_item_id is not None
                else None
            )
            if item is None:
                raise ConflictError(f"{line.name} is no longer on the menu")
            if item.unlimited_stock:
                continue
            if not self.menu_service.decrement_stock(item.id, line.quantity):
                logger.warning(
                    f"Stock exhausted for {line.name} while paying order {order.id}"
                )
                raise ConflictError(f"Insufficient stock for {line.name}")
        order.stock_deducted = True

    def _persist_new_order(self, build, deduct_stock: bool = False) -> Order:
        """
        Allocate an invoice number and insert the order in one transaction.

        A unique-constraint clash on the invoice number (two first-of-day
        checkouts racing to create the counter row) is retried a bounded
        number of times.
        """
        attempts = max(1, settings.invoice_retry_attempts)
        for attempt in range(1, attempts + 1):
            order = build()
            try:
                order.invoice_number = next_invoice_number(self.db)
                self.db.add(order)
                self.db.flush()
                if deduct_stock:
                    self._deduct_stock(order)
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                if attempt == attempts:
                    logger.error("Could not allocate an invoice number", exc_info=True)
                    raise StorageError("Failed to create order")
                logger.warning(
                    f"Invoice number conflict, retrying ({attempt}/{attempts})"
                )
                continue
            except SQLAlchemyError:
                self.db.rollback()
                logger.error("Database error while creating order", exc_info=True)
                raise StorageError("Failed to create order")
            except Exception:
                self.db.rollback()
                raise

            self.db.refresh(order)
            return order

    # ========== Workflow operations ==========

    def create_order(
        self,
        caller: Optional[Caller],
        lines: Sequence[CartLine],
        payment_config: PaymentConfig,
    ) -> Tuple[Order, PaymentPayload]:
        """Create a Pending online order and the UPI payload to pay it."""
        if caller is None:
            raise AuthenticationError("Unauthorized")

        catalog, requested = self._validate_cart(lines)
        order = self._persist_new_order(
            lambda: self._build_order(
                catalog,
                requested,
                user_id=caller.id,
                status=OrderStatus.PENDING,
                is_walk_in=False,
                payment_method=PaymentMethod.UPI,
            )
        )
        logger.info(
            f"Order {order.invoice_number} created by user {caller.id} "
            f"for {order.total_amount}"
        )
        payment = build_payment_payload(
            payment_config, order.total_amount, order.invoice_number
        )
        return order, payment

    def create_walk_in_order(
        self,
        caller: Caller,
        lines: Sequence[CartLine],
        payment_method: PaymentMethod,
        payment_config: PaymentConfig,
    ) -> Tuple[Order, Optional[PaymentPayload]]:
        """
        Counter sale entered by an admin.

        Cash sales are created Paid with stock taken in the same transaction.
        UPI sales are created Pending and confirmed later like online orders.
        """
        ensure_admin(caller)
        catalog, requested = self._validate_cart(lines)
        is_cash = payment_method == PaymentMethod.CASH

        order = self._persist_new_order(
            lambda: self._build_order(
                catalog,
                requested,
                user_id=None,
                status=OrderStatus.PAID if is_cash else OrderStatus.PENDING,
                is_walk_in=True,
                payment_method=payment_method,
            ),
            deduct_stock=is_cash,
        )
        logger.info(
            f"Walk-in order {order.invoice_number} ({payment_method.value}) "
            f"created by admin {caller.email}"
        )
        if is_cash:
            return order, None
        return order, build_payment_payload(
            payment_config, order.total_amount, order.invoice_number
        )

    def confirm_payment(self, caller: Optional[Caller], order_id: int) -> Order:
        """
        Mark a Pending order Paid and consume its stock, all or nothing.

        The status flip is conditional on the order still being Pending and
        not yet having consumed stock, so confirming twice (or racing two
        confirmations) decrements stock at most once.
        """
        if caller is None:
            raise AuthenticationError("Unauthorized")
        order = self._get_order(order_id)
        self._ensure_can_access(caller, order, require_admin_for_walk_in=True)

        if order.status != OrderStatus.PENDING.value or order.stock_deducted:
            raise ConflictError("Order is not pending payment")

        with atomic(self.db, "confirm payment"):
            flipped = (
                self.db.query(Order)
                .filter(
                    Order.id == order.id,
                    Order.status == OrderStatus.PENDING.value,
                    Order.stock_deducted == False,  # noqa: E712
                )
                .update(
                    {
                        Order.status: OrderStatus.PAID.value,
                        Order.stock_deducted: True,
                        Order.updated_at: utcnow(),
                    },
                    synchronize_session=False,
                )
            )
            if flipped != 1:
                raise ConflictError("Order is not pending payment")
            self._deduct_stock(order)

        self.db.refresh(order)
        logger.info(f"Payment confirmed for order {order.invoice_number} by {caller.email}")
        return order

    def update_status(self, caller: Caller, order_id: int, status: OrderStatus) -> Order:
        """Admin overwrite of the order status; never touches stock."""
        ensure_admin(caller)
        order = self._get_order(order_id)
        previous = order.status
        with atomic(self.db, "update order status"):
            order.status = OrderStatus(status).value
        self.db.refresh(order)
        logger.info(
            f"Order {order.invoice_number} status {previous} -> {order.status} "
            f"by {caller.email}"
        )
        return order

    # ========== Queries ==========

    def _get_order(self, order_id: int) -> Order:
        order = (
            self.db.query(Order)
            .options(selectinload(Order.order_items), selectinload(Order.user))
            .filter(Order.id == order_id)
            .first()
        )
        if not order:
            raise NotFoundError("Order not found")
        return order

    def _ensure_can_access(
        self, caller: Caller, order: Order, require_admin_for_walk_in: bool = False
    ) -> None:
        if caller.is_admin:
            return
        if require_admin_for_walk_in and order.is_walk_in:
            raise AuthorizationError("Admin access required")
        if order.user_id != caller.id:
            raise AuthorizationError("You do not have access to this order")

    def get_order(self, caller: Optional[Caller], order_id: int) -> Order:
        if caller is None:
            raise AuthenticationError("Unauthorized")
        order = self._get_order(order_id)
        self._ensure_can_access(caller, order)
        return order

    def list_user_orders(self, caller: Optional[Caller]) -> List[Order]:
        if caller is None:
            raise AuthenticationError("Unauthorized")
        return (
            self.db.query(Order)
            .options(selectinload(Order.order_items), selectinload(Order.user))
            .filter(Order.user_id == caller.id)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .all()
        )

    def list_orders(
        self,
        caller: Caller,
        status: Optional[OrderStatus] = None,
        limit: int = 100,
    ) -> List[Order]:
        ensure_admin(caller)
        query = self.db.query(Order).options(
            selectinload(Order.order_items), selectinload(Order.user)
        )
        if status:
            query = query.filter(Order.status == OrderStatus(status).value)
        return (
            query.order_by(Order.created_at.desc(), Order.id.desc()).limit(limit).all()
        )
