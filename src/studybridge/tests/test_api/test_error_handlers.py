import pytest
from fastapi import FastAPI
from starlette.testclient import TestClient

from studybridge.api.v1.error_handlers import register_exception_handlers
from studybridge.exceptions import (
    BridgeError,
    ConcurrentModificationError,
    ConstraintViolationError,
    EntityAlreadyExistsError,
    InvalidEntityError,
    ParseError,
    RepositoryError,
)


def make_client(exc: Exception) -> TestClient:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/boom")
    async def boom():
        raise exc

    return TestClient(app)


def test_entity_already_exists_is_409_with_existing_user():
    exc = EntityAlreadyExistsError(
        "Email address has already been used by another account.",
        entity_type="Account",
        entity_keys={"userId": "user-1"},
        fields=["email"],
    )

    resp = make_client(exc).get("/boom")

    assert resp.status_code == 409
    assert resp.json() == {
        "detail": "Email address has already been used by another account.",
        "code": "entity_already_exists",
        "fields": ["email"],
        "entity_type": "Account",
        "entity_keys": {"userId": "user-1"},
    }


@pytest.mark.parametrize(
    "exc, status, code",
    [
        (ConcurrentModificationError("stale"), 409, "concurrent_modification"),
        (ConstraintViolationError("Accounts table constraint prevented save or update."), 409, "constraint_violation"),
        (ParseError("identifier cannot be null"), 400, "invalid_payload"),
        (RepositoryError("Failed to retrieve Account"), 500, "repository_error"),
        (BridgeError("something else", error_code="unmapped"), 400, "unmapped"),
    ],
)
def test_status_and_code(exc, status, code):
    resp = make_client(exc).get("/boom")

    assert resp.status_code == status
    assert resp.json()["code"] == code
    assert resp.json()["detail"] == exc.message


def test_invalid_entity_lists_field_errors():
    exc = InvalidEntityError(
        "Label is invalid",
        errors={"labels[0].lang": ["labels[0].lang cannot be missing, null, or blank"]},
    )

    resp = make_client(exc).get("/boom")

    assert resp.status_code == 400
    assert resp.json()["errors"] == {"labels[0].lang": ["labels[0].lang cannot be missing, null, or blank"]}
