import pytest
from catalog.models import Product
from catalog.tests.factories import ProductFactory
from common.choices import OrderStatus, PaymentStatus
from common.errors import InvalidTransition, ValidationError
from inventory.models import StockMovement
from orders.lifecycle import can_transition, cancel_order, transition_order
from orders.tests.factories import OrderFactory, OrderItemFactory


@pytest.mark.parametrize(
    "current,target,allowed",
    [
        (OrderStatus.PLACED, OrderStatus.PROCESSING, True),
        (OrderStatus.PROCESSING, OrderStatus.SHIPPED, True),
        (OrderStatus.SHIPPED, OrderStatus.DELIVERED, True),
        (OrderStatus.PLACED, OrderStatus.CANCELLED, True),
        (OrderStatus.PROCESSING, OrderStatus.CANCELLED, True),
        (OrderStatus.SHIPPED, OrderStatus.CANCELLED, False),
        (OrderStatus.DELIVERED, OrderStatus.CANCELLED, False),
        (OrderStatus.CANCELLED, OrderStatus.CANCELLED, False),
        (OrderStatus.PLACED, OrderStatus.SHIPPED, False),
        (OrderStatus.DELIVERED, OrderStatus.PLACED, False),
    ],
)
def test_transition_table(current, target, allowed):
    assert can_transition(current, target) is allowed


@pytest.mark.django_db
def test_cancel_restores_stock_then_rejects_second_cancel():
    first = ProductFactory(stock=7)
    second = ProductFactory(stock=1)
    order = OrderFactory()
    OrderItemFactory(order=order, product=first, quantity=3)
    OrderItemFactory(order=order, product=second, quantity=2)

    cancelled = cancel_order(order)

    assert cancelled.status == OrderStatus.CANCELLED
    assert cancelled.payment_status == PaymentStatus.REFUNDED
    assert Product.objects.get(id=first.id).stock == 10
    assert Product.objects.get(id=second.id).stock == 3
    assert StockMovement.objects.filter(reference=f"order:{order.number}").count() == 2

    with pytest.raises(InvalidTransition) as exc:
        cancel_order(order)
    assert exc.value.current == OrderStatus.CANCELLED
    assert Product.objects.get(id=first.id).stock == 10


@pytest.mark.django_db
def test_cancel_skips_items_whose_product_was_deleted():
    kept = ProductFactory(stock=0)
    order = OrderFactory()
    OrderItemFactory(order=order, product=kept, quantity=2)
    gone_item = OrderItemFactory(order=order, quantity=1)
    gone_item.product.delete()

    cancel_order(order)

    assert Product.objects.get(id=kept.id).stock == 2


@pytest.mark.django_db
def test_processing_order_can_be_cancelled():
    order = OrderFactory(status=OrderStatus.PROCESSING)

    assert cancel_order(order).status == OrderStatus.CANCELLED


@pytest.mark.django_db
@pytest.mark.parametrize("status", [OrderStatus.SHIPPED, OrderStatus.DELIVERED])
def test_shipped_or_delivered_orders_cannot_be_cancelled(status):
    product = ProductFactory(stock=5)
    order = OrderFactory(status=status)
    OrderItemFactory(order=order, product=product, quantity=2)

    with pytest.raises(InvalidTransition):
        cancel_order(order)

    order.refresh_from_db()
    assert order.status == status
    assert order.payment_status == PaymentStatus.COMPLETED
    assert Product.objects.get(id=product.id).stock == 5


@pytest.mark.django_db
def test_full_fulfilment_path_records_tracking_number():
    order = OrderFactory()

    order = transition_order(order, OrderStatus.PROCESSING)
    order = transition_order(order, OrderStatus.SHIPPED, tracking_number=" 1Z999 ")
    order = transition_order(order, OrderStatus.DELIVERED)

    order.refresh_from_db()
    assert order.status == OrderStatus.DELIVERED
    assert order.tracking_number == "1Z999"
    with pytest.raises(InvalidTransition):
        transition_order(order, OrderStatus.PROCESSING)


@pytest.mark.django_db
def test_skipping_a_step_is_rejected():
    order = OrderFactory()

    with pytest.raises(InvalidTransition):
        transition_order(order, OrderStatus.DELIVERED)


@pytest.mark.django_db
def test_unknown_status_is_a_validation_error():
    order = OrderFactory()

    with pytest.raises(ValidationError):
        transition_order(order, "lost")


@pytest.mark.django_db
def test_status_change_is_logged(caplog):
    order = OrderFactory()

    with caplog.at_level("INFO", logger="pawmart.orders"):
        transition_order(order, OrderStatus.PROCESSING)

    record = next(r for r in caplog.records if r.getMessage() == "order_status_changed")
    assert record.status_from == OrderStatus.PLACED
    assert record.status_to == OrderStatus.PROCESSING
