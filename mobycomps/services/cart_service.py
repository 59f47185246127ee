from datetime import datetime, timezone
from sqlalchemy.ext.asyncio import AsyncSession
from mobycomps.core.auditing import AuditSpan
from mobycomps.core.config import CURRENCY
from mobycomps.domain.cart import crud as cart_crud
from mobycomps.domain.cart.models import CartItem
from mobycomps.domain.exceptions import NotFound, NotHolder
from mobycomps.domain.tickets import crud as ticket_crud
from mobycomps.services import ticket_service
from mobycomps.services.sweeper_service import sweep_holder


async def _require_holder_item(db: AsyncSession, cart_item_id: int, holder_ref: str) -> CartItem:
    item = await cart_crud.get_cart_item(db, cart_item_id)
    if not item:
        raise NotFound("Cart item not found", ctx={"cart_item_id": cart_item_id})
    if item.holder_ref != holder_ref:
        raise NotHolder("Cart item belongs to another shopper", ctx={"cart_item_id": cart_item_id})
    return item


async def _heal_item(db: AsyncSession, item: CartItem) -> bool:
    held = await ticket_crud.list_held(db, item.holder_ref, item.competition_id, item.ticket_numbers)
    if not held:
        await db.delete(item)
        return False

    numbers = [number for number, _ in held]
    expires_at = min(until for _, until in held)
    if numbers != sorted(item.ticket_numbers):
        item.ticket_numbers = numbers
    if item.expires_at != expires_at:
        item.expires_at = expires_at
    return True


def item_line(item: CartItem) -> dict:
    price = item.competition.ticket_price
    return {
        "id": item.id,
        "competition_id": item.competition_id,
        "competition_title": item.competition.title,
        "ticket_numbers": list(item.ticket_numbers),
        "ticket_price": price,
        "subtotal": len(item.ticket_numbers) * price,
        "expires_at": item.expires_at,
    }


async def view_cart(db: AsyncSession, holder_ref: str) -> dict:
    """
    Cart rows are re-derived from the ticket store on every read: lapsed numbers are dropped,
    rows with nothing left are deleted and expiry follows the earliest remaining hold.
    """
    await sweep_holder(db, holder_ref)

    lines = []
    for item in await cart_crud.list_holder_items(db, holder_ref):
        if await _heal_item(db, item):
            lines.append(item_line(item))
    await db.flush()

    now = datetime.now(timezone.utc)
    expires_at = min((line["expires_at"] for line in lines), default=None)
    seconds_left = max(0, int((expires_at - now).total_seconds())) if expires_at else 0
    return {
        "items": lines,
        "expires_at": expires_at,
        "seconds_left": seconds_left,
        "total": sum(line["subtotal"] for line in lines),
        "currency": CURRENCY,
    }


async def add_item(
        db: AsyncSession,
        competition_id: int,
        numbers: list[int],
        holder_ref: str
) -> tuple[CartItem, list[int], datetime]:
    async with AuditSpan(
        scope="CART",
        action="ADD_ITEM",
        object_type="cart_item",
        competition_id=competition_id,
        meta={"requested": len(numbers)}
    ) as span:
        _, reserved, expires_at = await ticket_service.reserve_numbers(db, competition_id, numbers, holder_ref)
        item = await cart_crud.merge_holder_item(db, holder_ref, competition_id, reserved, expires_at)
        # numbers merged in from an older row may have lapsed in the sweep reserve_numbers just ran
        await _heal_item(db, item)
        await db.flush()

        span.object_id = item.id
        span.meta.update({"reserved": reserved, "item_size": len(item.ticket_numbers)})
        return item, reserved, expires_at


async def remove_item(db: AsyncSession, cart_item_id: int, holder_ref: str) -> None:
    async with AuditSpan(scope="CART", action="REMOVE_ITEM", object_type="cart_item", object_id=cart_item_id) as span:
        item = await _require_holder_item(db, cart_item_id, holder_ref)
        released = await ticket_crud.release_held(db, item.competition_id, item.ticket_numbers, holder_ref)

        span.competition_id = item.competition_id
        span.meta.update({"released": released})
        await db.delete(item)
        await db.flush()


async def clear_cart(db: AsyncSession, holder_ref: str) -> dict:
    async with AuditSpan(scope="CART", action="CLEAR", object_type="cart_item") as span:
        stats = {
            "tickets_released": await ticket_crud.release_all_for_holder(db, holder_ref),
            "cart_items_removed": await cart_crud.delete_holder_items(db, holder_ref),
        }
        await db.flush()
        span.meta.update(stats)
        return stats
