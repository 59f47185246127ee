import pytest
from mobycomps.scripts import admin_seed
from mobycomps.domain.users.models import Role
from tests.helper import session_mock, create_role


@pytest.mark.asyncio
async def test_seed_admin_user_skips_without_credentials(mocker):
    mocker.patch("mobycomps.scripts.admin_seed.ADMIN_PASSWORD", None)
    db = session_mock(mocker)

    assert await admin_seed.seed_admin_user(db) is None
    db.flush.assert_not_awaited()


@pytest.mark.asyncio
async def test_seed_admin_user_creates_admin_with_roles(mocker):
    mocker.patch("mobycomps.scripts.admin_seed.ADMIN_EMAIL", " Admin@MobyComps.co.uk ")
    mocker.patch("mobycomps.scripts.admin_seed.ADMIN_PASSWORD", "Str0ngPassword")
    mocker.patch("mobycomps.scripts.admin_seed.hash_password", return_value="hashed")
    mocker.patch("mobycomps.scripts.admin_seed.get_user_by_email", new=mocker.AsyncMock(return_value=None))
    mocker.patch(
        "mobycomps.scripts.admin_seed.get_role_by_name",
        new=mocker.AsyncMock(side_effect=lambda db, name: Role(name=name))
    )
    db = session_mock(mocker)
    db.add = mocker.Mock()

    user = await admin_seed.seed_admin_user(db)

    assert user.email == "admin@mobycomps.co.uk"
    assert sorted(r.name for r in user.roles) == ["ADMIN", "CUSTOMER"]
    db.add.assert_called_once_with(user)


@pytest.mark.asyncio
async def test_seed_admin_user_tops_up_missing_roles(mocker):
    mocker.patch("mobycomps.scripts.admin_seed.ADMIN_EMAIL", "admin@mobycomps.co.uk")
    mocker.patch("mobycomps.scripts.admin_seed.ADMIN_PASSWORD", "Str0ngPassword")
    user = mocker.Mock(roles=[create_role(mocker, "CUSTOMER")])
    mocker.patch("mobycomps.scripts.admin_seed.get_user_by_email", new=mocker.AsyncMock(return_value=user))
    role_spy = mocker.patch(
        "mobycomps.scripts.admin_seed.get_role_by_name",
        new=mocker.AsyncMock(return_value=create_role(mocker, "ADMIN"))
    )

    await admin_seed.seed_admin_user(session_mock(mocker))

    role_spy.assert_awaited_once_with(mocker.ANY, "ADMIN")
    assert [r.name for r in user.roles] == ["CUSTOMER", "ADMIN"]
