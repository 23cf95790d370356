import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError

from pet_recurrence.api.error_handlers import register_error_handlers
from pet_recurrence.domain.errors import (
    InvalidRequestError,
    RecurrenceRuleNotFoundError,
    compose_error_message,
)


def _client_raising(exc: Exception) -> TestClient:
    app = FastAPI()
    register_error_handlers(app)

    @app.get("/boom")
    def boom() -> None:
        raise exc

    return TestClient(app, raise_server_exceptions=False)


def test_domain_error_handler_returns_contract_shape() -> None:
    client = _client_raising(RecurrenceRuleNotFoundError(message="Missing rule"))

    response = client.get("/boom")

    assert response.status_code == 404
    assert response.json() == {
        "code": "NOT_FOUND",
        "message": "Missing rule",
    }


def test_domain_error_handler_includes_details_when_present() -> None:
    client = _client_raising(InvalidRequestError(details={"date": "soon"}))

    response = client.get("/boom")

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "INVALID_REQUEST"
    assert body["details"] == {"date": "soon"}
    assert body["message"].startswith("Cause: ")


def test_unexpected_error_handler_hides_internal_message() -> None:
    client = _client_raising(RuntimeError("database password leaked"))

    response = client.get("/boom")

    assert response.status_code == 500
    body = response.json()
    assert body["code"] == "INTERNAL_SERVER_ERROR"
    assert "leaked" not in body["message"]
    assert body["details"] == {"error_type": "RuntimeError"}


@pytest.mark.parametrize(
    "driver_message",
    [
        "UNIQUE constraint failed: recurrence_exception_dates.recurrence_rule_id, "
        "recurrence_exception_dates.exception_date",
        'duplicate key value violates unique constraint '
        '"uq_recurrence_exception_dates_rule_date"',
    ],
)
def test_integrity_error_on_duplicate_exception_date_returns_conflict(
    driver_message: str,
) -> None:
    client = _client_raising(
        IntegrityError("INSERT", {}, Exception(driver_message))
    )

    response = client.get("/boom")

    assert response.status_code == 409
    assert response.json()["code"] == "DUPLICATE_EXCEPTION_DATE"


def test_other_integrity_errors_map_to_persistence_error() -> None:
    client = _client_raising(
        IntegrityError("INSERT", {}, Exception("NOT NULL constraint failed"))
    )

    response = client.get("/boom")

    assert response.status_code == 422
    assert response.json()["code"] == "PERSISTENCE_ERROR"


def test_compose_error_message_joins_cause_and_action() -> None:
    assert (
        compose_error_message(cause="It broke.", action="Fix it.")
        == "Cause: It broke. Action: Fix it."
    )
