from mobycomps.domain.competitions.models import CompetitionStatus


def db_with_scalar(mocker, value):
    db = mocker.Mock()
    db.scalar = mocker.AsyncMock(return_value=value)
    return db


def session_mock(mocker):
    db = mocker.Mock()
    db.scalar = mocker.AsyncMock()
    db.scalars = mocker.AsyncMock()
    db.execute = mocker.AsyncMock()
    db.flush = mocker.AsyncMock()
    db.refresh = mocker.AsyncMock()
    db.delete = mocker.AsyncMock()
    db.rollback = mocker.AsyncMock()
    return db


def create_role(mocker, name: str):
    role = mocker.Mock()
    role.name = name
    return role


def create_competition(mocker, **override):
    data = {
        "id": 1,
        "title": "Win a Tesla",
        "max_tickets": 10,
        "ticket_price": 199,
        "status": CompetitionStatus.LIVE,
    }
    data.update(override)
    return mocker.Mock(**data)
