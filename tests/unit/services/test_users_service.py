import pytest
from datetime import datetime, timezone
from mobycomps.services import users_service, entries_service
from mobycomps.domain.entries.models import EntryStatus
from mobycomps.domain.entries.schemas import EntriesQueryDTO
from mobycomps.domain.exceptions import Forbidden, NotFound
from mobycomps.domain.users.schemas import AdminUsersQueryDTO, UserActiveUpdateDTO
from tests.helper import session_mock


@pytest.mark.asyncio
async def test_set_user_active_cannot_deactivate_self(mocker):
    get_spy = mocker.patch("mobycomps.domain.users.crud.get_user_by_id", new=mocker.AsyncMock())

    with pytest.raises(Forbidden):
        await users_service.set_user_active(session_mock(mocker), mocker.Mock(id=1), 1, UserActiveUpdateDTO(is_active=False))

    get_spy.assert_not_awaited()


@pytest.mark.asyncio
async def test_set_user_active_unknown_user_raises_not_found(mocker):
    mocker.patch("mobycomps.domain.users.crud.get_user_by_id", new=mocker.AsyncMock(return_value=None))

    with pytest.raises(NotFound):
        await users_service.set_user_active(session_mock(mocker), mocker.Mock(id=1), 2, UserActiveUpdateDTO(is_active=False))


@pytest.mark.asyncio
async def test_set_user_active_updates_flag(mocker):
    db = session_mock(mocker)
    user = mocker.Mock(id=2, is_active=True)
    mocker.patch("mobycomps.domain.users.crud.get_user_by_id", new=mocker.AsyncMock(return_value=user))

    result = await users_service.set_user_active(db, mocker.Mock(id=1), 2, UserActiveUpdateDTO(is_active=False))

    assert result.is_active is False
    db.flush.assert_awaited_once()


@pytest.mark.asyncio
async def test_list_users_admin_builds_page(mocker):
    role = mocker.Mock(id=1)
    role.name = "CUSTOMER"
    user = mocker.Mock(
        id=3, email="a@b.com", first_name="Al", last_name="Bo",
        created_at=datetime(2025, 1, 1, tzinfo=timezone.utc), is_active=True, roles=[role]
    )
    list_spy = mocker.patch("mobycomps.domain.users.crud.list_all_users", new=mocker.AsyncMock(return_value=([user], 21)))

    page = await users_service.list_users_admin(session_mock(mocker), AdminUsersQueryDTO(page=2, page_size=10, email="b.com"))

    assert page.total == 21
    assert page.pages == 3
    assert page.items[0].role_names == ["CUSTOMER"]
    assert list_spy.await_args.kwargs["email"] == "b.com"


@pytest.mark.asyncio
async def test_list_my_entries_flattens_competition(mocker):
    competition = mocker.Mock(title="Win a Tesla", draw_date=datetime(2026, 1, 1, tzinfo=timezone.utc))
    entry = mocker.Mock(
        id=1, competition_id=4, competition=competition, ticket_numbers=[3, 9],
        status=EntryStatus.ACTIVE, created_at=datetime(2025, 1, 1, tzinfo=timezone.utc)
    )
    list_spy = mocker.patch("mobycomps.domain.entries.crud.list_user_entries", new=mocker.AsyncMock(return_value=([entry], 1)))

    page = await entries_service.list_my_entries(session_mock(mocker), mocker.Mock(id=8), EntriesQueryDTO())

    assert page.items[0].competition_title == "Win a Tesla"
    assert page.items[0].ticket_numbers == [3, 9]
    assert list_spy.await_args.args[1] == 8
