"""Application service: Checkout Orchestrator.

The explicit state machine that turns a cart into a confirmed, paid
order.  It is the only component that talks to the resolvers, the order
creator, the payment initiator and the poller; views only call its
action surface and read its state.

States and allowed transitions are listed in ``_TRANSITIONS``.  Every
state change goes through ``_transition`` so an illegal jump fails
loudly instead of leaving the checkout half-updated.

The cart and the pending-payment handle are the only state that
survives a reload.  Both are written exclusively from this module.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum

from checkout.application.clock import Clock, Sleep, real_sleep, utc_now
from checkout.application.countdown import Countdown
from checkout.application.create_order import OrderCreator
from checkout.application.dto import CheckoutView, ShippingOptionDTO
from checkout.application.initiate_payment import PaymentInitiator
from checkout.application.manage_cart import CartHandler
from checkout.application.poll_payment import (
    CARD_IN_PROCESS_POLICY,
    INSTANT_TRANSFER_POLICY,
    PaymentStatusPoller,
    PollHandle,
    PollOutcome,
    PollPolicy,
)
from checkout.application.quote_shipping import ShippingResolver
from checkout.application.resolve_address import AddressResolver
from checkout.application.tokenize_card import CardTokenizer
from checkout.application.validate_coupon import CouponResolver
from checkout.domain.exceptions import (
    ArtifactUnavailable,
    CheckoutInProgress,
    CouponRejected,
    DomainException,
    EntityNotFoundError,
    GatewayRejected,
    InvalidTransition,
    NetworkError,
    PaymentExpired,
    RateLimited,
    ValidationError,
)
from checkout.domain.model.address import Address, PostalCodeInfo, select_initial
from checkout.domain.model.card import CardDetails, CardToken
from checkout.domain.model.cart import Cart
from checkout.domain.model.coupon import AppliedCoupon
from checkout.domain.model.order import Order
from checkout.domain.model.payment import (
    BankSlip,
    InstantTransferArtifact,
    Payment,
    PaymentMethod,
    PaymentStatus,
    RejectionReason,
    installment_amount,
    validate_installments,
)
from checkout.domain.model.pending_payment import PendingPaymentHandle
from checkout.domain.model.shipping import ShippingOption
from checkout.domain.model.value_objects import Money
from checkout.domain.repository.pending_payment_repository import PendingPaymentRepository
from checkout.domain.service.totals import CheckoutTotals, compute_totals

logger = logging.getLogger(__name__)


class CheckoutState(Enum):
    IDLE = "idle"
    ADDRESS_READY = "address_ready"
    SHIPPING_READY = "shipping_ready"
    METHOD_SELECTED = "method_selected"
    ORDER_CREATED = "order_created"
    PAYMENT_INITIATED = "payment_initiated"
    INSTANT_TRANSFER_AWAITING = "instant_transfer_awaiting"
    CARD_PROCESSING = "card_processing"
    BANK_SLIP_ISSUED = "bank_slip_issued"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    EXPIRED = "expired"


S = CheckoutState

_TRANSITIONS: dict[CheckoutState, frozenset[CheckoutState]] = {
    # IDLE can jump straight to a payment state when resuming after a reload.
    S.IDLE: frozenset({
        S.ADDRESS_READY, S.INSTANT_TRANSFER_AWAITING, S.CARD_PROCESSING,
        S.CONFIRMED, S.FAILED, S.EXPIRED,
    }),
    S.ADDRESS_READY: frozenset({S.SHIPPING_READY}),
    S.SHIPPING_READY: frozenset({S.ADDRESS_READY, S.METHOD_SELECTED}),
    S.METHOD_SELECTED: frozenset({
        S.ADDRESS_READY, S.SHIPPING_READY, S.ORDER_CREATED, S.PAYMENT_INITIATED,
    }),
    S.ORDER_CREATED: frozenset({S.PAYMENT_INITIATED, S.METHOD_SELECTED}),
    S.PAYMENT_INITIATED: frozenset({
        S.INSTANT_TRANSFER_AWAITING, S.CARD_PROCESSING, S.BANK_SLIP_ISSUED,
        S.CONFIRMED, S.FAILED, S.METHOD_SELECTED,
    }),
    S.INSTANT_TRANSFER_AWAITING: frozenset({S.CONFIRMED, S.FAILED, S.EXPIRED, S.METHOD_SELECTED}),
    S.CARD_PROCESSING: frozenset({S.CONFIRMED, S.FAILED, S.METHOD_SELECTED}),
    S.FAILED: frozenset({S.METHOD_SELECTED}),
    S.EXPIRED: frozenset({S.METHOD_SELECTED, S.PAYMENT_INITIATED}),
    S.BANK_SLIP_ISSUED: frozenset(),
    S.CONFIRMED: frozenset(),
}

_PRE_ORDER = frozenset({S.IDLE, S.ADDRESS_READY, S.SHIPPING_READY, S.METHOD_SELECTED})
_METHOD_SELECTABLE = frozenset({S.SHIPPING_READY, S.METHOD_SELECTED, S.ORDER_CREATED, S.EXPIRED})
_SUBMITTABLE = frozenset({S.METHOD_SELECTED, S.ORDER_CREATED, S.PAYMENT_INITIATED, S.EXPIRED})


@dataclass(frozen=True)
class CheckoutPolicies:
    instant_transfer: PollPolicy = INSTANT_TRANSFER_POLICY
    card_in_process: PollPolicy = CARD_IN_PROCESS_POLICY


def _shipping_dto(option: ShippingOption) -> ShippingOptionDTO:
    return ShippingOptionDTO(
        service_id=option.service_id,
        display_name=option.display_name,
        price=str(option.price),
        estimated_days=option.estimated_days,
    )


class CheckoutOrchestrator:

    def __init__(
        self,
        user_id: int,
        carts: CartHandler,
        pending_payments: PendingPaymentRepository,
        addresses: AddressResolver,
        shipping: ShippingResolver,
        coupons: CouponResolver,
        tokenizer: CardTokenizer,
        orders: OrderCreator,
        payments: PaymentInitiator,
        poller: PaymentStatusPoller,
        policies: CheckoutPolicies | None = None,
        clock: Clock = utc_now,
        sleep: Sleep = real_sleep,
    ) -> None:
        self._user_id = user_id
        self._carts = carts
        self._pending = pending_payments
        self._address_resolver = addresses
        self._shipping_resolver = shipping
        self._coupon_resolver = coupons
        self._tokenizer = tokenizer
        self._orders = orders
        self._payments = payments
        self._poller = poller
        self._policies = policies or CheckoutPolicies()
        self._clock = clock
        self._sleep = sleep

        self._state = S.IDLE
        self.history: list[CheckoutState] = [S.IDLE]
        self._closed = False
        self._submitting = False
        self._validating_coupon = False

        self._cart = carts.load()
        self._addresses: list[Address] = []
        self._address: Address | None = None
        self._shipping_options: list[ShippingOption] = []
        self._shipping: ShippingOption | None = None
        self._method: PaymentMethod | None = None
        self._installments = 1
        self._coupon: AppliedCoupon | None = None
        self._coupon_cart: tuple | None = None
        self._coupon_to_reapply: str | None = None
        self._cooldown_until: datetime | None = None

        self._order: Order | None = None
        self._payment: Payment | None = None
        self._active_payment: Payment | None = None
        self._artifact: InstantTransferArtifact | None = None
        self._bank_slip: BankSlip | None = None
        self._last_error: DomainException | None = None

        self._poll: PollHandle | None = None
        self._watch: asyncio.Task | None = None

    # --- Read-only surface ----------------------------------------------------

    @property
    def state(self) -> CheckoutState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def cart(self) -> Cart:
        return self._cart

    @property
    def addresses(self) -> list[Address]:
        return list(self._addresses)

    @property
    def address(self) -> Address | None:
        return self._address

    @property
    def shipping_options(self) -> list[ShippingOption]:
        return list(self._shipping_options)

    @property
    def shipping(self) -> ShippingOption | None:
        return self._shipping

    @property
    def method(self) -> PaymentMethod | None:
        return self._method

    @property
    def coupon(self) -> AppliedCoupon | None:
        return self._coupon

    @property
    def order(self) -> Order | None:
        return self._order

    @property
    def payment(self) -> Payment | None:
        return self._payment

    @property
    def artifact(self) -> InstantTransferArtifact | None:
        return self._artifact

    @property
    def bank_slip(self) -> BankSlip | None:
        return self._bank_slip

    @property
    def last_error(self) -> DomainException | None:
        return self._last_error

    @property
    def totals(self) -> CheckoutTotals:
        """What the user is shown; an order's own figures once it exists."""
        if self._order is not None:
            order = self._order
            gross = order.subtotal.amount + order.shipping_cost.amount
            discount = max(gross - order.total.amount, Decimal("0"))
            return CheckoutTotals(
                subtotal=order.subtotal,
                discount=Money(discount),
                shipping=order.shipping_cost,
            )
        return compute_totals(self._cart.subtotal, self._coupon, self._shipping)

    @property
    def displayed_total(self) -> Money:
        if self._order is not None:
            return self._order.total
        return self.totals.total

    @property
    def cooldown_remaining(self) -> float:
        if self._cooldown_until is None:
            return 0.0
        return max((self._cooldown_until - self._clock()).total_seconds(), 0.0)

    def countdown(self) -> Countdown | None:
        if self._state is not S.INSTANT_TRANSFER_AWAITING or self._artifact is None:
            return None
        return Countdown(self._artifact.expires_at, self._clock)  # type: ignore[arg-type]

    def view(self) -> CheckoutView:
        totals = self.totals
        countdown = self.countdown()
        payment = self._payment
        order_id = self._order.id if self._order else (payment.order_id if payment else None)
        return CheckoutView(
            state=self._state.value,
            subtotal=str(totals.subtotal),
            discount=str(totals.discount),
            shipping=str(totals.shipping),
            total=str(self.displayed_total),
            shipping_service=self._shipping.service_id if self._shipping else None,
            shipping_options=tuple(_shipping_dto(option) for option in self._shipping_options),
            coupon_code=self._coupon.code if self._coupon else None,
            order_id=order_id,
            installments=self._installments,
            installment_amount=(
                str(installment_amount(self.displayed_total, self._installments))
                if self._method is not None and self._method.is_card
                else None
            ),
            payment_id=payment.id if payment else None,
            payment_status=payment.status.value if payment else None,
            qr_image=self._artifact.qr_image if countdown else None,
            pay_code=self._artifact.pay_code if countdown else None,
            countdown=countdown.label() if countdown else None,
            bank_slip_url=self._bank_slip.document_url if self._bank_slip else None,
            error=str(self._last_error) if self._last_error else None,
        )

    # --- Address & shipping ---------------------------------------------------

    async def load_addresses(self) -> list[Address]:
        """Load saved addresses and pre-select the default (or first) one."""
        self._require_pre_order("load addresses")
        self._addresses = await self._address_resolver.list_addresses(self._user_id)
        initial = select_initial(self._addresses)
        if initial is not None:
            await self._use_address(initial)
        return self.addresses

    async def select_address(self, address_id: int) -> None:
        self._require_pre_order("select an address")
        for address in self._addresses:
            if address.id == address_id:
                await self._use_address(address)
                return
        raise EntityNotFoundError(f"Address #{address_id} not found")

    async def use_new_address(self, data: dict[str, str]) -> Address:
        """Validate and save a new address, then quote shipping for it.

        A failure to save does not block checkout: the order carries its
        own address snapshot.
        """
        self._require_pre_order("enter a new address")
        address = Address.create(data, is_default=not self._addresses)
        try:
            address = await self._address_resolver.create_address(data, len(self._addresses))
        except NetworkError as exc:
            logger.warning("Could not save new address, continuing unsaved: %s", exc)
        else:
            self._addresses.append(address)
        await self._use_address(address)
        return address

    async def lookup_postal_code(self, raw: str) -> PostalCodeInfo | None:
        return await self._address_resolver.resolve_postal_code(raw)

    def select_shipping(self, service_id: str) -> ShippingOption:
        self._require({S.SHIPPING_READY, S.METHOD_SELECTED}, "select shipping")
        self._require_no_order("change shipping")
        for option in self._shipping_options:
            if option.service_id == service_id:
                self._shipping = option
                return option
        raise ValidationError(
            f"Unknown shipping option '{service_id}'", {"shipping": "unknown option"}
        )

    # --- Payment method -------------------------------------------------------

    def select_method(self, method: PaymentMethod, installments: int = 1) -> None:
        self._require(_METHOD_SELECTABLE, "select a payment method")
        self._require_no_active_payment()
        if not method.is_card:
            installments = 1
        validate_installments(method, installments)
        self._method = method
        self._installments = installments
        self._transition(S.METHOD_SELECTED)

    # --- Coupon & cart --------------------------------------------------------

    async def apply_coupon(self, code: str) -> AppliedCoupon:
        """Validate ``code`` against the current subtotal and apply it.

        Submitting is refused until the validation has finished.  The
        result is discarded if the cart changed meanwhile.
        """
        if self._submitting:
            raise CheckoutInProgress("Cannot apply a coupon while the checkout is being submitted")
        if self._validating_coupon:
            raise CheckoutInProgress("A coupon is already being validated")
        self._require_pre_order("apply a coupon")
        cart_lines = self._cart.snapshot()

        self._validating_coupon = True
        try:
            coupon = await self._coupon_resolver.validate(code, self._cart.subtotal)
        except CouponRejected as exc:
            self._coupon = None
            self._coupon_cart = None
            self._last_error = exc
            raise
        finally:
            self._validating_coupon = False

        self._require_pre_order("apply a coupon")
        if self._cart.snapshot() != cart_lines:
            self._coupon_to_reapply = coupon.code
            raise ValidationError(
                f"The cart changed while coupon {coupon.code} was being validated; apply it again",
                {"coupon_code": "re-apply after the cart changed"},
            )
        self._coupon = coupon
        self._coupon_cart = cart_lines
        self._coupon_to_reapply = None
        logger.info("Coupon %s applied: -%s", coupon.code, coupon.discount_amount)
        return coupon

    def remove_coupon(self) -> None:
        self._require_pre_order("remove a coupon")
        self._coupon = None
        self._coupon_cart = None
        self._coupon_to_reapply = None

    async def update_cart_quantity(
        self, product_id: int, quantity: int, size: str = "", color: str = ""
    ) -> None:
        self._require_pre_order("edit the cart")
        self._carts.update_quantity(product_id, quantity, size, color)
        await self._cart_changed()

    async def remove_from_cart(self, product_id: int, size: str = "", color: str = "") -> None:
        self._require_pre_order("edit the cart")
        self._carts.remove(product_id, size, color)
        await self._cart_changed()

    async def on_cart_changed(self) -> None:
        """Re-read the cart after it was edited elsewhere."""
        self._require_pre_order("edit the cart")
        await self._cart_changed()

    # --- Submit ---------------------------------------------------------------

    async def submit(self, card: CardDetails | None = None) -> CheckoutState:
        """Create the order (once) and pay it with the selected method.

        Re-entrant calls while a submit is running raise
        CheckoutInProgress without touching the backend.  Payment
        outcomes (rejection, expiry, missing QR code) are reported
        through ``state`` and ``last_error``; problems that stop the
        submit before it starts are raised.
        """
        if self._submitting:
            raise CheckoutInProgress("Checkout submission already in progress")
        if self._validating_coupon:
            raise CheckoutInProgress("Wait for the coupon to be validated before submitting")
        self._require(_SUBMITTABLE, "submit")
        self._check_cooldown()

        self._submitting = True
        try:
            self._validate_submission(card)
            if self._order is None:
                await self._place_order()
            self._last_error = None
            return await self._pay(card)
        finally:
            self._submitting = False

    def _validate_submission(self, card: CardDetails | None) -> None:
        errors: dict[str, str] = {}
        if self._order is None:
            if self._address is None:
                errors["address"] = "select or enter a delivery address"
            if self._shipping is None:
                errors["shipping"] = "select a shipping option"
            if self._coupon_to_reapply is not None:
                errors["coupon_code"] = "re-apply or remove the coupon after the cart changed"
        if self._method is None:
            errors["payment_method"] = "select a payment method"
        elif self._method.is_card and card is None:
            errors["card"] = "card details are required"
        if errors:
            raise ValidationError.from_fields(errors)
        if self._method.is_card:  # type: ignore[union-attr]
            self._tokenizer.validate(card)  # type: ignore[arg-type]

    async def _place_order(self) -> None:
        draft = Order.draft(
            self._cart,
            self._address,  # type: ignore[arg-type]
            self._shipping,  # type: ignore[arg-type]
            self._method,  # type: ignore[arg-type]
            self._coupon,
        )
        shown = self.totals.total
        try:
            order = await self._orders.create(draft)
        except RateLimited as exc:
            self._cooldown_until = self._clock() + timedelta(seconds=exc.retry_after)
            self._last_error = exc
            raise

        self._order = order
        self._transition(S.ORDER_CREATED)
        if order.total != shown:
            error = ValidationError(
                f"Order total {order.total} differs from the displayed total {shown}; "
                f"review it and submit again",
                {"total": str(order.total)},
            )
            self._last_error = error
            raise error

    async def _pay(self, card: CardDetails | None) -> CheckoutState:
        method: PaymentMethod = self._method  # type: ignore[assignment]
        token = await self._tokenizer.tokenize(card) if method.is_card else None  # type: ignore[arg-type]

        if self._active_payment is not None and self._state is S.PAYMENT_INITIATED:
            # A previous submit created the payment but its processing step failed.
            payment = self._active_payment
            logger.info("Retrying processing of payment #%s", payment.id)
        else:
            self._require_no_active_payment()
            payment = await self._payments.create_payment(
                self._order, method, self._installments  # type: ignore[arg-type]
            )
            self._payment = payment
            self._active_payment = payment
            self._artifact = None
            self._transition(S.PAYMENT_INITIATED)

        if method is PaymentMethod.INSTANT_TRANSFER:
            await self._start_instant_transfer(payment)
        elif method.is_card:
            await self._charge_card(payment, token)  # type: ignore[arg-type]
        else:
            await self._issue_bank_slip(payment)
        return self._state

    async def _start_instant_transfer(self, payment: Payment) -> None:
        self._pending.save(
            PendingPaymentHandle(payment.id, payment.method, created_at=self._clock())
        )
        try:
            artifact = await self._payments.process_instant_transfer(payment)
        except ArtifactUnavailable as exc:
            self._release_payment()
            self._pending.clear()
            self._fail(exc)
            return
        self._artifact = artifact
        self._transition(S.INSTANT_TRANSFER_AWAITING)
        self._start_watch(payment, self._policies.instant_transfer, artifact.expires_at)

    async def _charge_card(self, payment: Payment, token: CardToken) -> None:
        try:
            outcome = await self._payments.process_card(payment, token, self._installments)
        except GatewayRejected as exc:
            self._release_payment()
            self._fail(exc)
            return
        if outcome.status is PaymentStatus.APPROVED:
            self._confirm()
            return
        self._pending.save(
            PendingPaymentHandle(payment.id, payment.method, created_at=self._clock())
        )
        self._transition(S.CARD_PROCESSING)
        self._start_watch(payment, self._policies.card_in_process, None)

    async def _issue_bank_slip(self, payment: Payment) -> None:
        self._bank_slip = await self._payments.process_bank_slip(payment)
        # Settled out of band; nothing left for this checkout to watch.
        self._release_payment()
        self._carts.clear()
        self._cart = Cart()
        self._transition(S.BANK_SLIP_ISSUED)
        self._closed = True

    # --- Resume, abandon, close -----------------------------------------------

    async def resume(self) -> CheckoutState:
        """Restore an in-flight payment from the pending-payment handle."""
        self._require({S.IDLE}, "resume a payment")
        handle = self._pending.get()
        if handle is None:
            return self._state

        try:
            payment = await self._payments.refresh(handle.payment_id)
        except EntityNotFoundError:
            logger.warning("Pending payment #%s no longer exists", handle.payment_id)
            self._pending.clear()
            return self._state

        logger.info("Resuming payment #%s (%s)", payment.id, payment.status.value)
        self._payment = payment
        self._method = handle.method
        self._installments = payment.installments

        if payment.is_terminal:
            self._pending.clear()
            if payment.status is PaymentStatus.APPROVED:
                self._confirm()
            else:
                # No order object to retry against after a reload.
                self._last_error = GatewayRejected(
                    RejectionReason.from_gateway(payment.status_detail), payment.status_detail
                )
                self._transition(S.FAILED)
            return self._state

        self._active_payment = payment
        if handle.method is PaymentMethod.INSTANT_TRANSFER:
            artifact = self._payments.settle_artifact(payment.artifact, issued_at=handle.created_at)
            if artifact.is_expired(self._clock()):
                self._expire()
                return self._state
            if not artifact.is_ready:
                try:
                    artifact = await self._payments.process_instant_transfer(payment, start=False)
                except ArtifactUnavailable as exc:
                    self._release_payment()
                    self._pending.clear()
                    self._last_error = exc
                    self._transition(S.FAILED)
                    return self._state
            self._artifact = artifact
            self._transition(S.INSTANT_TRANSFER_AWAITING)
            self._start_watch(payment, self._policies.instant_transfer, artifact.expires_at)
        else:
            self._transition(S.CARD_PROCESSING)
            self._start_watch(payment, self._policies.card_in_process, None)
        return self._state

    async def abandon(self) -> None:
        """Give up on the in-flight payment; the order is kept."""
        if self._active_payment is None:
            return
        logger.info("Payment #%s abandoned by the user", self._active_payment.id)
        await self._stop_watching()
        self._release_payment()
        self._pending.clear()
        self._artifact = None
        self._transition(S.METHOD_SELECTED)

    async def close(self) -> None:
        """Stop every background task; the pending handle is kept for a reload."""
        await self._stop_watching()
        self._closed = True

    async def wait(self) -> CheckoutState:
        """Wait until background polling has settled, then return the state."""
        if self._watch is not None:
            await asyncio.wait({self._watch})
        return self._state

    # --- Polling --------------------------------------------------------------

    def _start_watch(
        self, payment: Payment, policy: PollPolicy, expires_at: datetime | None
    ) -> None:
        timeout = policy.timeout
        if expires_at is not None:
            timeout = min(timeout, max((expires_at - self._clock()).total_seconds(), 0.0))
        self._poll = self._poller.start(
            payment.id,
            replace(policy, timeout=timeout),
            on_terminal=self._on_terminal,
            on_update=self._on_update,
        )
        self._watch = asyncio.ensure_future(self._watch_poll(self._poll, expires_at))

    async def _watch_poll(self, handle: PollHandle, expires_at: datetime | None) -> None:
        outcome = await handle.wait()
        if outcome in (PollOutcome.TERMINAL, PollOutcome.CANCELLED) or self._closed:
            return
        if expires_at is None:
            logger.warning(
                "Stopped polling payment #%s (%s); resume to check it again",
                handle.payment_id, outcome.value,
            )
            return
        delay = (expires_at - self._clock()).total_seconds()
        if delay > 0:
            await self._sleep(delay)
        await self._final_check(handle.payment_id)

    async def _final_check(self, payment_id: int) -> None:
        """Soft expiry: one last status read before declaring EXPIRED."""
        try:
            payment = await self._payments.refresh(payment_id)
        except DomainException as exc:
            logger.warning("Final status check for payment #%s failed: %s", payment_id, exc)
            self._expire(keep_handle=True)
            return
        if payment.is_terminal:
            self._on_terminal(payment)
        else:
            self._expire()

    def _on_update(self, payment: Payment) -> None:
        current = self._active_payment
        if current is None or current.id != payment.id:
            return
        if current.is_terminal and payment.status is not current.status:
            logger.warning(
                "Ignoring %s for payment #%s, already %s",
                payment.status.value, payment.id, current.status.value,
            )
            return
        current.advance(payment.status, payment.status_detail)

    def _on_terminal(self, payment: Payment) -> None:
        current = self._active_payment
        if current is None or current.id != payment.id or self._closed:
            return
        current.advance(payment.status, payment.status_detail)
        self._pending.clear()
        if current.status is PaymentStatus.APPROVED:
            self._confirm()
            return
        self._release_payment()
        self._fail(
            GatewayRejected(RejectionReason.from_gateway(current.status_detail), current.status_detail)
        )

    async def _stop_watching(self) -> None:
        tasks = []
        if self._poll is not None:
            self._poll.cancel()
            await self._poll.wait()
        if self._watch is not None and not self._watch.done():
            self._watch.cancel()
            tasks.append(self._watch)
        if tasks:
            await asyncio.wait(tasks)
        self._poll = None
        self._watch = None

    # --- Terminal transitions -------------------------------------------------

    def _confirm(self) -> None:
        self._release_payment()
        self._pending.clear()
        self._carts.clear()
        self._cart = Cart()
        self._transition(S.CONFIRMED)
        self._closed = True

    def _fail(self, error: DomainException) -> None:
        self._last_error = error
        self._transition(S.FAILED)
        if self._order is not None:
            self._transition(S.METHOD_SELECTED)

    def _expire(self, keep_handle: bool = False) -> None:
        payment_id = self._active_payment.id if self._active_payment else None
        self._release_payment()
        if not keep_handle:
            self._pending.clear()
        self._last_error = PaymentExpired(f"Payment #{payment_id} expired before it was paid")
        self._transition(S.EXPIRED)

    def _release_payment(self) -> None:
        self._active_payment = None

    # --- Helpers --------------------------------------------------------------

    async def _use_address(self, address: Address) -> None:
        self._address = address
        self._transition(S.ADDRESS_READY)
        await self._refresh_shipping()

    async def _refresh_shipping(self) -> None:
        options = await self._shipping_resolver.quote(self._address.postal_code, self._cart)  # type: ignore[union-attr]
        previous = self._shipping.service_id if self._shipping else None
        self._shipping_options = options
        self._shipping = next(
            (option for option in options if option.service_id == previous),
            ShippingResolver.default_option(options),
        )
        if self._state is not S.SHIPPING_READY:
            self._transition(S.SHIPPING_READY)
        if self._method is not None:
            self._transition(S.METHOD_SELECTED)

    async def _cart_changed(self) -> None:
        self._cart = self._carts.load()
        if self._coupon is not None and (
            self._coupon.is_stale_for(self._cart.subtotal)
            or self._cart.snapshot() != self._coupon_cart
        ):
            logger.info("Cart contents changed, coupon %s must be re-applied", self._coupon.code)
            self._coupon_to_reapply = self._coupon.code
            self._coupon = None
            self._coupon_cart = None
        if self._address is not None and self._state is not S.IDLE:
            if self._state is S.METHOD_SELECTED:
                self._transition(S.SHIPPING_READY)
            await self._refresh_shipping()

    def _check_cooldown(self) -> None:
        remaining = self.cooldown_remaining
        if remaining > 0:
            raise RateLimited(remaining)
        self._cooldown_until = None

    def _require(self, states: set[CheckoutState] | frozenset[CheckoutState], action: str) -> None:
        if self._closed:
            raise InvalidTransition(f"Cannot {action}: checkout is closed")
        if self._state not in states:
            raise InvalidTransition(f"Cannot {action} while {self._state.value}")

    def _require_pre_order(self, action: str) -> None:
        self._require(_PRE_ORDER, action)
        self._require_no_order(action)

    def _require_no_order(self, action: str) -> None:
        if self._order is not None:
            raise InvalidTransition(f"Cannot {action}: order #{self._order.id} already created")

    def _require_no_active_payment(self) -> None:
        if self._active_payment is not None:
            raise InvalidTransition(
                f"Payment #{self._active_payment.id} is still in progress for this order"
            )

    def _transition(self, new: CheckoutState) -> None:
        old = self._state
        if new is old:
            return
        if new not in _TRANSITIONS[old]:
            raise InvalidTransition(f"Illegal checkout transition {old.value} -> {new.value}")
        self._state = new
        self.history.append(new)
        logger.info("Checkout %s -> %s", old.value, new.value)
