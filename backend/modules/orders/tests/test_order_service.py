import threading
from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from core.auth import Caller
from core.config import settings
from core.database import enable_sqlite_foreign_keys, init_db
from core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from modules.auth.models.user_models import User
from modules.menu.models.menu_models import MenuItem
from modules.orders.enums.order_enums import OrderStatus, PaymentMethod
from modules.orders.models.order_models import InvoiceCounter, Order
from modules.orders.schemas.order_schemas import CartLine
from modules.orders.services.invoice_service import (
    business_day_key,
    format_invoice_number,
    next_invoice_number,
)
from modules.orders.services.order_service import OrderService
from modules.settings.schemas.settings_schemas import PaymentConfig


PAYMENT_CONFIG = PaymentConfig(upi_id="canteen@upi", payee_name="Veer Canteen")


def cart(*lines):
    return [CartLine(item_id=item_id, quantity=qty) for item_id, qty in lines]


def stock_of(db, item_id):
    db.expire_all()
    return db.get(MenuItem, item_id).stock


@pytest.fixture
def order_service(db_session):
    return OrderService(db_session)


class TestCreateOrder:

    def test_total_is_sum_of_lines(self, order_service, customer_caller, make_menu_item):
        samosa = make_menu_item(name="Samosa", price="50.00", stock=3)
        tea = make_menu_item(name="Tea", price="12.50", stock=10, category="Drinks")

        order, payment = order_service.create_order(
            customer_caller, cart((samosa.id, 2), (tea.id, 3)), PAYMENT_CONFIG
        )

        assert order.status == OrderStatus.PENDING.value
        assert order.total_amount == Decimal("137.50")
        assert sum(
            line.price_at_time * line.quantity for line in order.order_items
        ) == order.total_amount
        assert order.user_id == customer_caller.id
        assert order.is_walk_in is False
        assert payment.amount == 137.5
        assert payment.qr_code.startswith("data:image/png;base64,")
        assert f"tn=Order%20{order.invoice_number}" in payment.upi_uri

    def test_example_order_leaves_stock_untouched(
        self, order_service, db_session, customer_caller, make_menu_item
    ):
        item = make_menu_item(price="50.00", stock=3)

        order, _ = order_service.create_order(
            customer_caller, cart((item.id, 2)), PAYMENT_CONFIG
        )

        assert order.total_amount == Decimal("100.00")
        assert order.status == OrderStatus.PENDING.value
        assert order.stock_deducted is False
        assert stock_of(db_session, item.id) == 3

    def test_requires_caller(self, order_service, make_menu_item):
        item = make_menu_item()
        with pytest.raises(AuthenticationError):
            order_service.create_order(None, cart((item.id, 1)), PAYMENT_CONFIG)

    def test_empty_cart_rejected(self, order_service, customer_caller):
        with pytest.raises(ValidationError) as exc_info:
            order_service.create_order(customer_caller, [], PAYMENT_CONFIG)
        assert exc_info.value.detail == "Cart is empty"

    def test_unknown_item_rejected(self, order_service, db_session, customer_caller):
        with pytest.raises(NotFoundError):
            order_service.create_order(customer_caller, cart((999, 1)), PAYMENT_CONFIG)
        assert db_session.query(Order).count() == 0

    def test_unavailable_item_rejected(self, order_service, customer_caller, make_menu_item):
        item = make_menu_item(name="Dosa", is_available=False)
        with pytest.raises(ConflictError) as exc_info:
            order_service.create_order(customer_caller, cart((item.id, 1)), PAYMENT_CONFIG)
        assert "Dosa" in exc_info.value.detail

    def test_out_of_stock_rejected_and_nothing_persisted(
        self, order_service, db_session, customer_caller, make_menu_item
    ):
        ok = make_menu_item(name="Tea", stock=10)
        empty = make_menu_item(name="Vada", stock=0)

        with pytest.raises(ConflictError) as exc_info:
            order_service.create_order(
                customer_caller, cart((ok.id, 1), (empty.id, 1)), PAYMENT_CONFIG
            )

        assert "Vada" in exc_info.value.detail
        assert db_session.query(Order).count() == 0

    def test_unlimited_item_accepted_with_zero_stock(
        self, order_service, customer_caller, make_menu_item
    ):
        item = make_menu_item(name="Water", stock=0, unlimited_stock=True)

        order, _ = order_service.create_order(
            customer_caller, cart((item.id, 25)), PAYMENT_CONFIG
        )

        assert order.order_items[0].quantity == 25

    def test_quantities_for_same_item_are_summed(
        self, order_service, customer_caller, make_menu_item
    ):
        item = make_menu_item(stock=3)

        with pytest.raises(ConflictError):
            order_service.create_order(
                customer_caller, cart((item.id, 2), (item.id, 2)), PAYMENT_CONFIG
            )

    def test_line_snapshot_survives_catalog_edits(
        self, order_service, db_session, customer_caller, make_menu_item
    ):
        item = make_menu_item(name="Samosa", price="50.00", stock=5)
        order, _ = order_service.create_order(
            customer_caller, cart((item.id, 1)), PAYMENT_CONFIG
        )

        item.name = "Jumbo Samosa"
        item.price = Decimal("80.00")
        db_session.commit()
        db_session.expire_all()

        line = db_session.get(Order, order.id).order_items[0]
        assert line.name == "Samosa"
        assert line.price_at_time == Decimal("50.00")

    def test_line_kept_when_menu_item_deleted(
        self, order_service, db_session, customer_caller, make_menu_item
    ):
        item = make_menu_item(name="Samosa", stock=5)
        order, _ = order_service.create_order(
            customer_caller, cart((item.id, 1)), PAYMENT_CONFIG
        )

        db_session.delete(item)
        db_session.commit()
        db_session.expire_all()

        line = db_session.get(Order, order.id).order_items[0]
        assert line.menu_item_id is None
        assert line.name == "Samosa"

    def test_invoice_numbers_are_sequential(
        self, order_service, customer_caller, make_menu_item
    ):
        item = make_menu_item(stock=10)

        first, _ = order_service.create_order(customer_caller, cart((item.id, 1)), PAYMENT_CONFIG)
        second, _ = order_service.create_order(customer_caller, cart((item.id, 1)), PAYMENT_CONFIG)

        prefix, day, seq = first.invoice_number.split("-")
        assert prefix == "CAN"
        assert len(day) == 8
        assert seq == "0001"
        assert second.invoice_number == f"CAN-{day}-0002"


class TestConfirmPayment:

    def test_example_confirm_then_confirm_again(
        self, order_service, db_session, customer_caller, make_menu_item
    ):
        item = make_menu_item(price="50.00", stock=3)
        order, _ = order_service.create_order(
            customer_caller, cart((item.id, 2)), PAYMENT_CONFIG
        )

        paid = order_service.confirm_payment(customer_caller, order.id)
        assert paid.status == OrderStatus.PAID.value
        assert paid.stock_deducted is True
        assert stock_of(db_session, item.id) == 1

        with pytest.raises(ConflictError):
            order_service.confirm_payment(customer_caller, order.id)
        assert stock_of(db_session, item.id) == 1

    def test_unlimited_items_not_decremented(
        self, order_service, db_session, customer_caller, make_menu_item
    ):
        water = make_menu_item(name="Water", stock=0, unlimited_stock=True)
        tea = make_menu_item(name="Tea", stock=4)
        order, _ = order_service.create_order(
            customer_caller, cart((water.id, 5), (tea.id, 1)), PAYMENT_CONFIG
        )

        order_service.confirm_payment(customer_caller, order.id)

        assert stock_of(db_session, water.id) == 0
        assert stock_of(db_session, tea.id) == 3

    def test_shortfall_at_confirmation_changes_nothing(
        self, order_service, db_session, customer_caller, make_menu_item
    ):
        tea = make_menu_item(name="Tea", stock=5)
        vada = make_menu_item(name="Vada", stock=2)
        order, _ = order_service.create_order(
            customer_caller, cart((tea.id, 2), (vada.id, 2)), PAYMENT_CONFIG
        )

        # Sold at the counter in the meantime
        vada.stock = 1
        db_session.commit()

        with pytest.raises(ConflictError) as exc_info:
            order_service.confirm_payment(customer_caller, order.id)

        assert "Vada" in exc_info.value.detail
        assert stock_of(db_session, tea.id) == 5
        assert stock_of(db_session, vada.id) == 1
        reloaded = db_session.get(Order, order.id)
        assert reloaded.status == OrderStatus.PENDING.value
        assert reloaded.stock_deducted is False

    def test_two_confirmations_cannot_overdraw(
        self, order_service, db_session, customer_caller, make_menu_item
    ):
        item = make_menu_item(stock=3)
        first, _ = order_service.create_order(customer_caller, cart((item.id, 2)), PAYMENT_CONFIG)
        second, _ = order_service.create_order(customer_caller, cart((item.id, 2)), PAYMENT_CONFIG)

        order_service.confirm_payment(customer_caller, first.id)
        with pytest.raises(ConflictError):
            order_service.confirm_payment(customer_caller, second.id)

        assert stock_of(db_session, item.id) == 1
        assert db_session.get(Order, second.id).status == OrderStatus.PENDING.value

    def test_other_customer_cannot_confirm(
        self, order_service, customer_caller, other_caller, make_menu_item
    ):
        item = make_menu_item()
        order, _ = order_service.create_order(customer_caller, cart((item.id, 1)), PAYMENT_CONFIG)

        with pytest.raises(AuthorizationError):
            order_service.confirm_payment(other_caller, order.id)

    def test_admin_can_confirm_any_order(
        self, order_service, customer_caller, admin_caller, make_menu_item
    ):
        item = make_menu_item()
        order, _ = order_service.create_order(customer_caller, cart((item.id, 1)), PAYMENT_CONFIG)

        assert order_service.confirm_payment(admin_caller, order.id).status == "paid"

    def test_unknown_order(self, order_service, customer_caller):
        with pytest.raises(NotFoundError):
            order_service.confirm_payment(customer_caller, 12345)

    def test_reverting_to_pending_does_not_allow_second_decrement(
        self, order_service, db_session, customer_caller, admin_caller, make_menu_item
    ):
        item = make_menu_item(stock=5)
        order, _ = order_service.create_order(customer_caller, cart((item.id, 2)), PAYMENT_CONFIG)
        order_service.confirm_payment(customer_caller, order.id)

        order_service.update_status(admin_caller, order.id, OrderStatus.PENDING)
        with pytest.raises(ConflictError):
            order_service.confirm_payment(admin_caller, order.id)

        assert stock_of(db_session, item.id) == 3


@pytest.fixture
def file_session_factory(tmp_path):
    """Sessions on a file database so separate threads see each other's writes."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'race.db'}",
        connect_args={"check_same_thread": False, "timeout": 10},
    )
    enable_sqlite_foreign_keys(engine)
    init_db(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


def confirm_concurrently(Session, caller, order_ids):
    """Confirm each order id from its own thread, all released at once."""
    results = []
    barrier = threading.Barrier(len(order_ids))

    def confirm(order_id):
        db = Session()
        try:
            barrier.wait()
            OrderService(db).confirm_payment(caller, order_id)
            results.append("ok")
        except Exception as e:
            results.append(type(e).__name__)
        finally:
            db.close()

    threads = [threading.Thread(target=confirm, args=(oid,)) for oid in order_ids]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return results


class TestConcurrentConfirmation:

    @pytest.fixture
    def thali_order_setup(self, file_session_factory):
        setup = file_session_factory()
        user = User(email="race@example.com", name="Race", hashed_password="x")
        item = MenuItem(name="Thali", price=Decimal("90.00"), stock=3)
        setup.add_all([user, item])
        setup.commit()
        caller = Caller.model_validate(user)
        item_id = item.id

        def place(count):
            return [
                OrderService(setup).create_order(
                    caller, cart((item_id, 2)), PAYMENT_CONFIG
                )[0].id
                for _ in range(count)
            ]

        yield caller, item_id, place
        setup.close()

    def test_overdrawing_orders_exactly_one_succeeds(
        self, file_session_factory, thali_order_setup
    ):
        caller, item_id, place = thali_order_setup
        order_ids = place(4)

        results = confirm_concurrently(file_session_factory, caller, order_ids)

        assert results.count("ok") == 1
        check = file_session_factory()
        try:
            assert check.get(MenuItem, item_id).stock == 1
            statuses = [check.get(Order, oid).status for oid in order_ids]
        finally:
            check.close()
        assert statuses.count(OrderStatus.PAID.value) == 1
        assert statuses.count(OrderStatus.PENDING.value) == 3

    def test_same_order_confirmed_at_once_deducts_once(
        self, file_session_factory, thali_order_setup
    ):
        caller, item_id, place = thali_order_setup
        (order_id,) = place(1)

        results = confirm_concurrently(file_session_factory, caller, [order_id] * 4)

        assert results.count("ok") == 1
        check = file_session_factory()
        try:
            assert check.get(MenuItem, item_id).stock == 1
            order = check.get(Order, order_id)
            assert order.status == OrderStatus.PAID.value
            assert order.stock_deducted is True
        finally:
            check.close()


class TestInvoiceConflicts:

    def test_conflict_is_retried_with_a_fresh_number(
        self, order_service, db_session, customer_caller, make_menu_item
    ):
        item = make_menu_item(stock=10)
        calls = {"count": 0}

        def clashing_once(db, now=None):
            calls["count"] += 1
            number = next_invoice_number(db, now)
            if calls["count"] == 1:
                raise IntegrityError(
                    "INSERT INTO invoice_counters", {}, Exception("UNIQUE constraint failed")
                )
            return number

        with patch(
            "modules.orders.services.order_service.next_invoice_number", clashing_once
        ):
            order, _ = order_service.create_order(
                customer_caller, cart((item.id, 1)), PAYMENT_CONFIG
            )

        assert calls["count"] == 2
        # The first attempt's counter bump was rolled back with it
        assert order.invoice_number == format_invoice_number(business_day_key(), 1)
        assert db_session.query(Order).count() == 1

        second, _ = order_service.create_order(
            customer_caller, cart((item.id, 1)), PAYMENT_CONFIG
        )
        assert second.invoice_number == format_invoice_number(business_day_key(), 2)

    def test_persistent_clash_fails_without_leftovers(
        self, order_service, db_session, customer_caller, make_menu_item
    ):
        item = make_menu_item(stock=10)
        # An order already holds the number the empty counter would hand out
        taken = format_invoice_number(business_day_key(), 1)
        db_session.add(Order(invoice_number=taken, total_amount=Decimal("10.00")))
        db_session.commit()

        with patch(
            "modules.orders.services.order_service.next_invoice_number",
            wraps=next_invoice_number,
        ) as allocator:
            with pytest.raises(StorageError) as exc_info:
                order_service.create_order(
                    customer_caller, cart((item.id, 1)), PAYMENT_CONFIG
                )

        assert exc_info.value.detail == "Failed to create order"
        assert allocator.call_count == settings.invoice_retry_attempts
        assert db_session.query(Order).count() == 1
        assert db_session.query(InvoiceCounter).count() == 0
        assert stock_of(db_session, item.id) == 10


class TestWalkInOrders:

    def test_cash_sale_is_paid_and_takes_stock(
        self, order_service, db_session, admin_caller, make_menu_item
    ):
        item = make_menu_item(stock=3)

        order, payment = order_service.create_walk_in_order(
            admin_caller, cart((item.id, 2)), PaymentMethod.CASH, PAYMENT_CONFIG
        )

        assert payment is None
        assert order.status == OrderStatus.PAID.value
        assert order.is_walk_in is True
        assert order.user_id is None
        assert order.payment_method == "cash"
        assert order.stock_deducted is True
        assert stock_of(db_session, item.id) == 1

    def test_upi_sale_is_pending_until_confirmed(
        self, order_service, db_session, admin_caller, make_menu_item
    ):
        item = make_menu_item(stock=3)

        order, payment = order_service.create_walk_in_order(
            admin_caller, cart((item.id, 1)), PaymentMethod.UPI, PAYMENT_CONFIG
        )
        assert order.status == OrderStatus.PENDING.value
        assert payment.upi_uri.startswith("upi://pay?pa=canteen%40upi")
        assert stock_of(db_session, item.id) == 3

        order_service.confirm_payment(admin_caller, order.id)
        assert stock_of(db_session, item.id) == 2

    def test_customer_cannot_confirm_walk_in(
        self, order_service, admin_caller, customer_caller, make_menu_item
    ):
        item = make_menu_item()
        order, _ = order_service.create_walk_in_order(
            admin_caller, cart((item.id, 1)), PaymentMethod.UPI, PAYMENT_CONFIG
        )
        with pytest.raises(AuthorizationError):
            order_service.confirm_payment(customer_caller, order.id)

    def test_requires_admin(self, order_service, customer_caller, make_menu_item):
        item = make_menu_item()
        with pytest.raises(AuthorizationError):
            order_service.create_walk_in_order(
                customer_caller, cart((item.id, 1)), PaymentMethod.CASH, PAYMENT_CONFIG
            )


class TestStatusAndQueries:

    def test_update_status_overwrites_without_touching_stock(
        self, order_service, db_session, customer_caller, admin_caller, make_menu_item
    ):
        item = make_menu_item(stock=3)
        order, _ = order_service.create_order(customer_caller, cart((item.id, 1)), PAYMENT_CONFIG)

        for status in (OrderStatus.READY, OrderStatus.PREPARING, OrderStatus.CANCELLED):
            updated = order_service.update_status(admin_caller, order.id, status)
            assert updated.status == status.value

        assert stock_of(db_session, item.id) == 3

    def test_update_status_requires_admin(
        self, order_service, customer_caller, make_menu_item
    ):
        item = make_menu_item()
        order, _ = order_service.create_order(customer_caller, cart((item.id, 1)), PAYMENT_CONFIG)
        with pytest.raises(AuthorizationError):
            order_service.update_status(customer_caller, order.id, OrderStatus.PAID)

    def test_list_user_orders_only_returns_own(
        self, order_service, customer_caller, other_caller, make_menu_item
    ):
        item = make_menu_item(stock=10)
        mine, _ = order_service.create_order(customer_caller, cart((item.id, 1)), PAYMENT_CONFIG)
        order_service.create_order(other_caller, cart((item.id, 1)), PAYMENT_CONFIG)
        newest, _ = order_service.create_order(customer_caller, cart((item.id, 2)), PAYMENT_CONFIG)

        orders = order_service.list_user_orders(customer_caller)
        assert [o.id for o in orders] == [newest.id, mine.id]

    def test_get_order_checks_ownership(
        self, order_service, customer_caller, other_caller, admin_caller, make_menu_item
    ):
        item = make_menu_item()
        order, _ = order_service.create_order(customer_caller, cart((item.id, 1)), PAYMENT_CONFIG)

        assert order_service.get_order(customer_caller, order.id).id == order.id
        assert order_service.get_order(admin_caller, order.id).id == order.id
        with pytest.raises(AuthorizationError):
            order_service.get_order(other_caller, order.id)

    def test_list_orders_filters_by_status(
        self, order_service, customer_caller, admin_caller, make_menu_item
    ):
        item = make_menu_item(stock=10)
        pending, _ = order_service.create_order(customer_caller, cart((item.id, 1)), PAYMENT_CONFIG)
        paid, _ = order_service.create_order(customer_caller, cart((item.id, 1)), PAYMENT_CONFIG)
        order_service.confirm_payment(customer_caller, paid.id)

        only_paid = order_service.list_orders(admin_caller, OrderStatus.PAID)
        assert [o.id for o in only_paid] == [paid.id]
        assert len(order_service.list_orders(admin_caller)) == 2
        assert len(order_service.list_orders(admin_caller, limit=1)) == 1
