from fastapi import APIRouter
from fastapi.testclient import TestClient

from app.db.helpers import DatabaseError

router = APIRouter()


@router.get("/boom")
async def boom():
    raise RuntimeError("secret internals")


@router.get("/db")
async def db():
    raise DatabaseError("connection refused", operation="fetch_one")


def test_unknown_route_uses_error_shape(make_app):
    client = TestClient(make_app(router))

    response = client.get("/missing")

    assert response.status_code == 404
    assert response.json() == {"error": "Not Found", "code": "NOT_FOUND"}


def test_unhandled_errors_do_not_leak_details(make_app):
    client = TestClient(make_app(router), raise_server_exceptions=False)

    for path in ("/boom", "/db"):
        response = client.get(path)
        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error", "code": "INTERNAL_ERROR"}
