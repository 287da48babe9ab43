from fastapi import APIRouter, status
from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError

from conducky.errors import StaleTransitionError, resolve_error_code
from conducky.main import create_app


def _client_with(router: APIRouter) -> TestClient:
    app = create_app()
    app.include_router(router)
    return TestClient(app, raise_server_exceptions=False)


def test_cors_preflight_for_state_change() -> None:
    client = TestClient(create_app())

    response = client.options(
        "/reports/00000000-0000-0000-0000-000000000000/state",
        headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "PATCH",
            "Access-Control-Request-Headers": "content-type,authorization",
        },
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"
    assert "PATCH" in response.headers["access-control-allow-methods"]
    assert response.headers["access-control-allow-credentials"] == "true"


def test_cors_rejects_unknown_origin() -> None:
    client = TestClient(create_app())

    response = client.options(
        "/health",
        headers={"Origin": "https://evil.example", "Access-Control-Request-Method": "GET"},
    )

    assert "access-control-allow-origin" not in response.headers


def test_stale_transition_envelope() -> None:
    router = APIRouter()

    @router.get("/boom/stale")
    async def stale():
        raise StaleTransitionError(details={"expected": "submitted", "to": "closed"})

    response = _client_with(router).get("/boom/stale")

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json() == {
        "error": {
            "code": "STALE_TRANSITION",
            "message": StaleTransitionError.message,
            "details": {"expected": "submitted", "to": "closed"},
        }
    }


def test_integrity_error_becomes_conflict() -> None:
    router = APIRouter()

    @router.get("/boom/integrity")
    async def integrity():
        raise IntegrityError("INSERT ...", {}, Exception("duplicate key"))

    response = _client_with(router).get("/boom/integrity")

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["error"]["code"] == "CONFLICT_ERROR"


def test_unhandled_exception_hides_details() -> None:
    router = APIRouter()

    @router.get("/boom/crash")
    async def crash():
        raise RuntimeError("secret connection string")

    response = _client_with(router).get("/boom/crash")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json()["error"]["code"] == "INTERNAL_ERROR"
    assert "secret" not in response.text


def test_unknown_route_uses_envelope() -> None:
    response = TestClient(create_app()).get("/nope")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_resolve_error_code_fallbacks() -> None:
    assert resolve_error_code(503) == "INTERNAL_ERROR"
    assert resolve_error_code(418) == "UNKNOWN_ERROR"
