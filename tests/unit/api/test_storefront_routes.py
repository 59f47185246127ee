import pytest
from datetime import datetime, timezone
from fastapi import FastAPI
from fastapi.testclient import TestClient
from mobycomps.api.exceptions import register_error_handler
from mobycomps.api.v1.routes import tickets, cart, health
from mobycomps.core.database import get_db
from mobycomps.domain.exceptions import AlreadyHeld

EXPIRES_AT = datetime(2025, 1, 1, 12, 15, tzinfo=timezone.utc)
SESSION = {"X-Session-ID": "shopper-0001"}


@pytest.fixture
def client(mocker):
    app = FastAPI()
    register_error_handler(app)
    app.include_router(tickets.router)
    app.include_router(cart.router)
    app.include_router(health.router)
    db = mocker.Mock()

    async def _db():
        yield db

    app.dependency_overrides[get_db] = _db
    return TestClient(app)


def test_reserve_returns_camel_case_reservation(mocker, client):
    add_spy = mocker.patch(
        "mobycomps.services.cart_service.add_item",
        new=mocker.AsyncMock(return_value=(mocker.Mock(), [1, 2], EXPIRES_AT))
    )

    response = client.post("/tickets/3/reserve", json={"numbers": [2, 1]}, headers=SESSION)

    assert response.status_code == 201
    assert response.json() == {"reserved": [1, 2], "expiresAt": "2025-01-01T12:15:00Z"}
    assert add_spy.await_args.args[1:] == (3, [2, 1], "session:shopper-0001")


def test_reserve_contention_returns_409_with_unavailable(mocker, client):
    mocker.patch(
        "mobycomps.services.cart_service.add_item",
        new=mocker.AsyncMock(side_effect=AlreadyHeld("Some ticket numbers are no longer available", unavailable=[2]))
    )

    response = client.post("/tickets/3/reserve", json={"numbers": [1, 2]}, headers=SESSION)

    assert response.status_code == 409
    assert response.json()["unavailable"] == [2]


def test_reserve_without_session_or_login_returns_401(mocker, client):
    add_spy = mocker.patch("mobycomps.services.cart_service.add_item", new=mocker.AsyncMock())

    response = client.post("/tickets/3/reserve", json={"numbers": [1]})

    assert response.status_code == 401
    add_spy.assert_not_awaited()


def test_release_returns_204(mocker, client):
    release_spy = mocker.patch("mobycomps.services.ticket_service.release_numbers", new=mocker.AsyncMock(return_value=[1]))

    response = client.post("/tickets/3/release", json={"numbers": [1]}, headers=SESSION)

    assert response.status_code == 204
    release_spy.assert_awaited_once()


def test_get_cart_serializes_camel_case(mocker, client):
    mocker.patch(
        "mobycomps.services.cart_service.view_cart",
        new=mocker.AsyncMock(return_value={
            "items": [{
                "id": 1,
                "competition_id": 3,
                "competition_title": "Win a Tesla",
                "ticket_numbers": [1, 2],
                "ticket_price": 199,
                "subtotal": 398,
                "expires_at": EXPIRES_AT,
            }],
            "expires_at": EXPIRES_AT,
            "seconds_left": 600,
            "total": 398,
            "currency": "GBP",
        })
    )

    body = client.get("/cart", headers=SESSION).json()

    assert body["secondsLeft"] == 600
    assert body["items"][0]["competitionId"] == 3
    assert body["items"][0]["ticketNumbers"] == [1, 2]


def test_add_cart_item_sets_location(mocker, client):
    competition = mocker.Mock(title="Win a Tesla", ticket_price=199)
    item = mocker.Mock(id=1, competition_id=3, competition=competition, ticket_numbers=[1], expires_at=EXPIRES_AT)
    mocker.patch(
        "mobycomps.services.cart_service.add_item",
        new=mocker.AsyncMock(return_value=(item, [1], EXPIRES_AT))
    )

    response = client.post("/cart/items", json={"competitionId": 3, "numbers": [1]}, headers=SESSION)

    assert response.status_code == 201
    assert response.headers["location"] == "/cart"
    assert response.json()["subtotal"] == 199


def test_health_needs_no_session(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert datetime.fromisoformat(body["timestamp"].replace("Z", "+00:00")).tzinfo is not None
