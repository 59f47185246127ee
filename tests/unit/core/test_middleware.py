from fastapi import FastAPI
from fastapi.testclient import TestClient
from mobycomps.core.ctx import get_request_id, get_route, get_client_ip
from mobycomps.core.middleware.http_ctx import HttpContextMiddleware
from mobycomps.core.middleware.request_id import RequestIdMiddleware


def _client() -> TestClient:
    app = FastAPI()
    app.add_middleware(HttpContextMiddleware)
    app.add_middleware(RequestIdMiddleware, header_name="X-Request-ID")

    @app.get("/ctx")
    async def ctx():
        return {"request_id": get_request_id(), "route": get_route(), "ip": get_client_ip()}

    return TestClient(app)


def test_request_id_is_generated_and_echoed():
    response = _client().get("/ctx")

    body = response.json()
    assert len(body["request_id"]) == 32
    assert response.headers["x-request-id"] == body["request_id"]
    assert body["route"] == "GET /ctx"


def test_well_formed_client_request_id_is_kept():
    response = _client().get("/ctx", headers={"X-Request-ID": "checkout-42"})

    assert response.json()["request_id"] == "checkout-42"


def test_malformed_client_request_id_is_replaced():
    response = _client().get("/ctx", headers={"X-Request-ID": "bad id <script>"})

    assert response.json()["request_id"] != "bad id <script>"


def test_client_ip_prefers_first_forwarded_hop():
    response = _client().get("/ctx", headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})

    assert response.json()["ip"] == "203.0.113.7"
