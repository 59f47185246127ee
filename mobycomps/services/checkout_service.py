import hashlib
import logging
import secrets
import uuid
from datetime import datetime, timezone
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from mobycomps.core.auditing import AuditSpan
from mobycomps.core.config import CURRENCY
from mobycomps.domain.cart import crud as cart_crud
from mobycomps.domain.competitions.models import Competition
from mobycomps.domain.entries.models import Entry
from mobycomps.domain.exceptions import NotFound, Conflict, InvalidInput, NotHolder, PaymentNotConfirmed, \
    DuplicateSettlement, Expired
from mobycomps.domain.payments.models import Payment, PaymentStatus
from mobycomps.domain.tickets import crud as ticket_crud
from mobycomps.services.cart_service import view_cart
from mobycomps.services.sweeper_service import sweep_holder

logger = logging.getLogger("mobycomps.checkout")

TEST_PROVIDER = "test"
FINAL_STATUSES = (PaymentStatus.COMPLETED, PaymentStatus.FAILED)


def _normalize_uuid4(key: str | None) -> str:
    if not key or not key.strip():
        raise InvalidInput("Idempotency key is required")
    try:
        u = uuid.UUID(key.strip())
    except ValueError as e:
        raise InvalidInput("Idempotency key must be UUIDv4") from e
    if u.version != 4:
        raise InvalidInput("Idempotency key must be UUIDv4")
    return str(u)


def _ik_digest(idempotency_key: str) -> str:
    return hashlib.sha256(idempotency_key.encode()).hexdigest()[:16]


def _new_payment_ref() -> str:
    return f"pay_{uuid.uuid4().hex}"


def _client_secret(payment_ref: str) -> str:
    return f"{payment_ref}_secret_{secrets.token_urlsafe(16)}"


async def _require_payment(db: AsyncSession, payment_ref: str, *, for_update: bool = False) -> Payment:
    stmt = select(Payment).where(Payment.payment_ref == payment_ref)
    if for_update:
        stmt = stmt.with_for_update()
    payment = await db.scalar(stmt)
    if not payment:
        raise NotFound("Payment not found", ctx={"payment_ref": payment_ref})
    return payment


def _require_payment_holder(payment: Payment, holder_ref: str) -> None:
    if payment.holder_ref != holder_ref:
        raise NotHolder("Payment belongs to another shopper", ctx={"payment_ref": payment.payment_ref})


async def start_payment(
        db: AsyncSession,
        holder_ref: str,
        user_id: int | None,
        idempotency_key: str | None
) -> Payment:
    """
    Snapshot the current cart into a payment with the test provider.
    The same key with the same cart returns the original payment; a different cart is a conflict.
    """
    idempotency_key = _normalize_uuid4(idempotency_key)
    ik_d = _ik_digest(idempotency_key)

    async with AuditSpan(scope="PAYMENTS", action="START", object_type="payment", meta={"ik_digest": ik_d}) as span:
        existing = await db.scalar(select(Payment).where(Payment.idempotency_key == idempotency_key))
        if existing:
            _require_payment_holder(existing, holder_ref)
            span.object_id = existing.id
            span.payment_id = existing.id
            if existing.status in FINAL_STATUSES:
                span.meta.update({"status": existing.status.value, "idempotent_hit": True})
                return existing

        had_items = bool(await cart_crud.list_holder_items(db, holder_ref))
        cart = await view_cart(db, holder_ref)
        if not cart["items"]:
            if had_items:
                raise Expired("Cart reservations have expired", ctx={"holder_ref": holder_ref})
            raise InvalidInput("Cart is empty", ctx={"holder_ref": holder_ref})

        items = [{"competition_id": line["competition_id"], "numbers": line["ticket_numbers"]} for line in cart["items"]]
        amount = cart["total"]
        span.meta.update({"amount": amount, "lines": len(items)})

        if existing:
            if existing.items != items or existing.amount != amount:
                raise Conflict(
                    "Idempotency key reused for different payload",
                    ctx={"payment_ref": existing.payment_ref, "amount": amount}
                )
            span.meta.update({"status": existing.status.value, "idempotent_hit": True})
            return existing

        payment_ref = _new_payment_ref()
        payment = Payment(
            payment_ref=payment_ref,
            holder_ref=holder_ref,
            user_id=user_id,
            amount=amount,
            currency=CURRENCY,
            provider=TEST_PROVIDER,
            status=PaymentStatus.REQUIRES_ACTION,
            idempotency_key=idempotency_key,
            client_secret=_client_secret(payment_ref),
            items=items
        )
        db.add(payment)
        try:
            await db.flush()
        except IntegrityError as e:
            raise Conflict("Payment already exists", ctx={"ik_digest": ik_d}) from e

        span.object_id = payment.id
        span.payment_id = payment.id
        span.meta.update({"status": payment.status.value, "payment_ref": payment_ref})
        return payment


async def confirm_payment(db: AsyncSession, payment_ref: str, holder_ref: str, success: bool) -> Payment:
    async with AuditSpan(scope="PAYMENTS", action="CONFIRM", object_type="payment", meta={"success": success}) as span:
        payment = await _require_payment(db, payment_ref, for_update=True)
        _require_payment_holder(payment, holder_ref)
        span.object_id = payment.id
        span.payment_id = payment.id
        span.meta.update({"prev_status": payment.status.value})

        if payment.status in FINAL_STATUSES:
            span.meta.update({"new_status": payment.status.value, "no_op": True})
            return payment

        if success:
            payment.status = PaymentStatus.COMPLETED
            payment.paid_at = datetime.now(timezone.utc)
        else:
            payment.status = PaymentStatus.FAILED
        await db.flush()
        span.meta.update({"new_status": payment.status.value})
        return payment


async def get_payment(db: AsyncSession, payment_ref: str, holder_ref: str) -> Payment:
    payment = await _require_payment(db, payment_ref)
    _require_payment_holder(payment, holder_ref)
    return payment


async def _settle_line(
        db: AsyncSession,
        payment: Payment,
        competition_id: int,
        numbers: list[int],
        user_id: int,
        now: datetime
) -> list[int]:
    bought = await ticket_crud.purchase_held(db, competition_id, numbers, payment.holder_ref, user_id, now)
    if bought:
        await db.execute(
            update(Competition)
            .where(Competition.id == competition_id)
            .values(tickets_sold=Competition.tickets_sold + len(bought))
        )
        db.add(Entry(
            user_id=user_id,
            competition_id=competition_id,
            ticket_numbers=bought,
            payment_ref=payment.payment_ref
        ))
    await cart_crud.detach_numbers(db, payment.holder_ref, competition_id, numbers)
    return bought


async def settle(db: AsyncSession, payment_ref: str, holder_ref: str, user_id: int) -> dict:
    """
    Convert the tickets a completed payment paid for into purchased entries.
    - The payment row is locked for the whole settlement, so concurrent calls serialize on it
    - Numbers whose hold lapsed before settlement are reported under "failed" and stay available
    - The result is stored on the payment and returned unchanged by every later call
    """
    async with AuditSpan(scope="CHECKOUT", action="SETTLE", object_type="payment",
                         meta={"payment_ref": payment_ref}) as span:
        payment = await _require_payment(db, payment_ref, for_update=True)
        span.object_id = payment.id
        span.payment_id = payment.id

        if payment.settlement is not None:
            if payment.user_id != user_id:
                raise DuplicateSettlement(
                    "Payment already settled",
                    ctx={"payment_ref": payment_ref, "settled_at": payment.settled_at}
                )
            span.meta.update({"replay": True})
            return payment.settlement

        _require_payment_holder(payment, holder_ref)
        if payment.status != PaymentStatus.COMPLETED:
            raise PaymentNotConfirmed(
                "Payment not confirmed",
                ctx={"payment_ref": payment_ref, "status": payment.status.value}
            )

        await sweep_holder(db, holder_ref)
        now = datetime.now(timezone.utc)

        purchased, failed = [], []
        for line in payment.items:
            competition_id, numbers = line["competition_id"], list(line["numbers"])
            bought = await _settle_line(db, payment, competition_id, numbers, user_id, now)
            if bought:
                purchased.append({"competition_id": competition_id, "numbers": bought})
            lost = sorted(set(numbers) - set(bought))
            if lost:
                failed.append({"competition_id": competition_id, "numbers": lost})

        result = {"purchased": purchased, "failed": failed}
        payment.user_id = user_id
        payment.settlement = result
        payment.settled_at = now
        try:
            await db.flush()
        except IntegrityError as e:
            raise DuplicateSettlement("Payment already settled", ctx={"payment_ref": payment_ref}) from e

        if failed:
            logger.warning(
                "Partial settlement payment_ref=%s amount=%s failed=%s",
                payment_ref, payment.amount, failed
            )
        span.meta.update({
            "purchased": sum(len(p["numbers"]) for p in purchased),
            "failed": sum(len(f["numbers"]) for f in failed),
        })
        return result
