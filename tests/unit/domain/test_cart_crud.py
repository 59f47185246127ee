import pytest
from datetime import datetime, timezone
from sqlalchemy.dialects import postgresql
from mobycomps.domain.cart import crud
from mobycomps.domain.tickets.models import TicketStatus


@pytest.mark.asyncio
async def test_delete_orphaned_items_keeps_rows_with_live_holds(mocker):
    now = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
    db = mocker.Mock()
    db.execute = mocker.AsyncMock(return_value=mocker.Mock(rowcount=2))

    removed = await crud.delete_orphaned_items(db, now)

    compiled = db.execute.await_args.args[0].compile(dialect=postgresql.dialect())
    sql = " ".join(str(compiled).split())
    assert removed == 2
    assert sql.startswith("DELETE FROM cart_items WHERE")
    assert "cart_items.expires_at <= %(expires_at_1)s" in sql
    assert "NOT" in sql and "EXISTS (SELECT 1" in sql
    assert "tickets.competition_id = cart_items.competition_id" in sql
    assert "tickets.holder_ref = cart_items.holder_ref" in sql
    assert "tickets.number = ANY (cart_items.ticket_numbers)" in sql
    assert compiled.params["expires_at_1"] == now
    assert compiled.params["status_1"] == TicketStatus.RESERVED


@pytest.mark.asyncio
async def test_merge_holder_item_inserts_without_clobbering_existing_row(mocker):
    expires_at = datetime(2025, 1, 1, 12, 15, tzinfo=timezone.utc)
    db = mocker.Mock()
    db.execute = mocker.AsyncMock()
    db.flush = mocker.AsyncMock()
    item = mocker.Mock(ticket_numbers=[5, 1], expires_at=expires_at)
    mocker.patch("mobycomps.domain.cart.crud.get_holder_item", new=mocker.AsyncMock(return_value=item))

    merged = await crud.merge_holder_item(db, "session:a", 9, [3], expires_at)

    sql = str(db.execute.await_args.args[0].compile(dialect=postgresql.dialect()))
    assert merged is item
    assert item.ticket_numbers == [1, 3, 5]
    assert sql.startswith("INSERT INTO cart_items")
    assert "ON CONFLICT (holder_ref, competition_id) DO NOTHING" in sql
