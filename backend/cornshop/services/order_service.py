import logging
from datetime import datetime, timedelta
from typing import List, Optional
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cornshop.adapters.mock_payment import (
    MockPaymentAdapter,
    PaymentDeclined,
    PaymentGatewayError,
)
from cornshop.config import settings
from cornshop.models.order import CheckoutState, Order, OrderLine, TrackingEvent
from cornshop.repositories.checkout_request_repo import CheckoutRequestRepository
from cornshop.schemas.cart_schema import CartLineItem
from cornshop.schemas.order_schema import (
    CheckoutIn,
    OrderLineOut,
    OrderOut,
    TrackingEventOut,
    TrackingOut,
)
from cornshop.services.loyalty_service import LoyaltyService
from cornshop.services.order_lifecycle import (
    DEFAULT_MESSAGES,
    OrderStatus,
    check_transition,
    is_terminal,
    progress,
)
from cornshop.services.pricing import calculate_totals
from cornshop.utils.clock import utcnow
from cornshop.utils.money import format_price, round_money

log = logging.getLogger(__name__)

CHARGED_METHODS = ("card", "ewallet")


class OrderServiceException(Exception):
    pass


class OrderNotFound(OrderServiceException):
    pass


class OrderService:
    def __init__(self, db: Session, payment_adapter: Optional[MockPaymentAdapter] = None):
        self.db = db
        self.requests = CheckoutRequestRepository(db)
        self.payment_adapter = payment_adapter or MockPaymentAdapter()
        self.loyalty = LoyaltyService(db)
        # set by submit_order when an idempotency key returned an earlier order
        self.replayed = False

    def _now(self) -> datetime:
        return utcnow()

    def _gen_order_number(self) -> str:
        return f"ORD-{uuid4().hex[:10].upper()}"

    def _gen_tracking_number(self) -> str:
        return f"TRK-{uuid4().hex[:12].upper()}"

    # -- submission --------------------------------------------------------

    def submit_order(
        self,
        items: List[CartLineItem],
        checkout: CheckoutIn,
        user_id: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Order:
        """
        Turn a cart into a pending order.

        ``items`` are copied, so the caller may clear or keep mutating its
        cart afterwards. Payment failures are raised as
        OrderServiceException; nothing is retried. A repeated
        ``idempotency_key`` returns the order created the first time
        and sets ``replayed``.
        """
        self.replayed = False
        if idempotency_key:
            req, owned = self.requests.claim(idempotency_key)
            if not owned:
                if req.state == CheckoutState.COMPLETED and req.order_number:
                    log.info("submit_order(): replay for key=%r", idempotency_key)
                    self.replayed = True
                    return self.get_order(req.order_number)
                raise OrderServiceException(
                    "Duplicate request in progress, try again later"
                )

        try:
            order = self._create(items, checkout, user_id)
        except OrderServiceException as e:
            if idempotency_key:
                self.requests.fail(idempotency_key, str(e))
            raise

        if idempotency_key:
            self.requests.complete(idempotency_key, order.order_number)
        return order

    def _create(
        self, items: List[CartLineItem], checkout: CheckoutIn, user_id: Optional[str]
    ) -> Order:
        items = [it.model_copy(deep=True) for it in items]
        if not items:
            raise OrderServiceException("Cart is empty")

        address = checkout.delivery_address or checkout.customer_info.address
        if checkout.delivery_method == "delivery" and not address:
            raise OrderServiceException("Delivery address is required")

        totals = calculate_totals(items, delivery_method=checkout.delivery_method)
        amount = round_money(totals.total)

        payment = {"method": checkout.payment_method, "status": "due", "amount": amount}
        if checkout.payment_method in CHARGED_METHODS:
            try:
                payment = self.payment_adapter.charge(
                    amount, checkout.payment_method, checkout.payment_details
                )
            except PaymentDeclined as e:
                raise OrderServiceException(f"Payment declined: {e}")
            except PaymentGatewayError as e:
                raise OrderServiceException(f"Payment failed: {e}")

        now = self._now()
        try:
            order = Order(
                order_number=self._gen_order_number(),
                tracking_number=self._gen_tracking_number(),
                user_id=user_id,
                status=OrderStatus.PENDING.value,
                subtotal=totals.subtotal,
                delivery_fee=totals.delivery_fee,
                tax=totals.tax,
                total=totals.total,
                customer_info=checkout.customer_info.model_dump(),
                delivery_address=address,
                delivery_method=checkout.delivery_method,
                payment_method=checkout.payment_method,
                payment=payment,
                notes=checkout.notes,
                estimated_delivery=now
                + timedelta(minutes=settings.ESTIMATED_DELIVERY_MINUTES),
                created_at=now,
            )
            for it in items:
                order.lines.append(
                    OrderLine(
                        item_id=it.id,
                        name=it.name,
                        qty=it.quantity,
                        unit_price=it.unit_price,
                        image=it.display.image if it.display else None,
                    )
                )
            self._append_event(order, OrderStatus.PENDING)
            self.db.add(order)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            if payment.get("transaction_id"):
                self.payment_adapter.refund(payment["transaction_id"])
            raise OrderServiceException(f"Failed to create order: {e}")

        log.info(
            "Order %s created: %d line(s), total %s",
            order.order_number,
            len(items),
            format_price(order.total),
        )
        return order

    # -- lifecycle ---------------------------------------------------------

    def _append_event(
        self,
        order: Order,
        status: OrderStatus,
        message: Optional[str] = None,
        location: Optional[str] = None,
    ):
        now = self._now()
        order.events.append(
            TrackingEvent(
                status=status.value,
                message=message or DEFAULT_MESSAGES[status],
                location=location,
                created_at=now,
            )
        )
        order.status = status.value
        order.updated_at = now

    def apply_status_update(
        self,
        order_number: str,
        status: str,
        message: Optional[str] = None,
        location: Optional[str] = None,
        allow_skip: bool = False,
    ) -> Order:
        """
        Entry point for status changes pushed or polled from the outside.

        A repeat of the current status is ignored. Reaching ``delivered``
        credits loyalty points to the customer.
        """
        order = self._get(order_number)
        if status == OrderStatus.CANCELLED.value:
            return self.cancel_order(order_number, reason=message)
        if status == order.status:
            return order

        target = check_transition(
            order.status, status, order.delivery_method, allow_skip=allow_skip
        )
        self._append_event(order, target, message, location)
        if target == OrderStatus.DELIVERED:
            self.loyalty.award_for_order(order)
        self.db.commit()
        log.info("Order %s -> %s", order.order_number, target.value)
        return order

    def cancel_order(self, order_number: str, reason: Optional[str] = None) -> Order:
        """Cancel a live order. Cancelling a finished or cancelled order is a no-op."""
        order = self._get(order_number)
        if is_terminal(order.status):
            log.info("cancel_order(): %s already %s", order_number, order.status)
            return order

        message = DEFAULT_MESSAGES[OrderStatus.CANCELLED]
        if reason:
            message = f"{message}: {reason}"
        txn = (order.payment or {}).get("transaction_id")
        if txn:
            refund = self.payment_adapter.refund(txn)
            order.payment = {**order.payment, "refund": refund}
        self._append_event(order, OrderStatus.CANCELLED, message)
        self.db.commit()
        log.info("Order %s cancelled", order_number)
        return order

    # -- queries -----------------------------------------------------------

    def _get(self, order_number: str) -> Order:
        order = (
            self.db.query(Order).filter(Order.order_number == order_number).first()
        )
        if not order:
            raise OrderNotFound(f"Order not found: {order_number}")
        return order

    def get_order(self, order_number: str) -> Order:
        return self._get(order_number)

    def list_orders(self, user_id: str, limit: int = 10) -> List[Order]:
        return (
            self.db.query(Order)
            .filter(Order.user_id == user_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .limit(limit)
            .all()
        )

    def list_open_orders(self) -> List[Order]:
        terminal = [OrderStatus.DELIVERED.value, OrderStatus.CANCELLED.value]
        return self.db.query(Order).filter(Order.status.notin_(terminal)).all()

    def tracking(self, order_number: str) -> TrackingOut:
        order = self._get(order_number)
        return TrackingOut(
            order_number=order.order_number,
            status=order.status,
            progress=progress(order.status, order.delivery_method),
            estimated_delivery=order.estimated_delivery,
            timeline=[TrackingEventOut.model_validate(e) for e in order.events],
        )

    @staticmethod
    def to_out(order: Order) -> OrderOut:
        return OrderOut(
            order_number=order.order_number,
            tracking_number=order.tracking_number,
            user_id=order.user_id,
            status=order.status,
            subtotal=round_money(order.subtotal),
            delivery_fee=round_money(order.delivery_fee),
            tax=round_money(order.tax),
            total=round_money(order.total),
            formatted_total=format_price(order.total),
            customer_info=order.customer_info,
            delivery_address=order.delivery_address,
            delivery_method=order.delivery_method,
            payment_method=order.payment_method,
            notes=order.notes,
            estimated_delivery=order.estimated_delivery,
            created_at=order.created_at,
            lines=[OrderLineOut.model_validate(l) for l in order.lines],
            events=[TrackingEventOut.model_validate(e) for e in order.events],
        )
