"""
Wayfarer Backend — Error Translation Tests
============================================

What:  translate_error() mappings and the mode-dependent response bodies.

What we test:
    ✅ Cast, duplicate-key and schema failures become operational 400s
    ✅ Unknown exceptions become non-operational 500s
    ✅ Development responses carry detail and stack
    ✅ Production masks programming faults and logs them
    ✅ Browser requests outside /api get the HTML error page
"""

import logging

import pytest
import pytest_asyncio
from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.exc import IntegrityError

from app.database import CastError
from app.error_handlers import GENERIC_MESSAGE, translate_error
from app.exceptions import (
    DuplicateFieldError,
    InvalidFieldValueError,
    NotFoundError,
    ValidationError,
)
from conftest import make_client


class _Strict(BaseModel):
    price: float


def _schema_error() -> SchemaValidationError:
    try:
        _Strict.model_validate({"price": "cheap"})
    except SchemaValidationError as exc:
        return exc
    raise AssertionError("model accepted invalid input")


@pytest.fixture
def faulty_app(app):
    """Test app with routes that fail the way a driver crash would."""

    async def api_boom():
        raise RuntimeError("database driver crashed")

    async def page_boom():
        raise RuntimeError("template engine crashed")

    app.router.add_api_route("/api/v1/_boom", api_boom, methods=["GET"])
    app.router.add_api_route("/_boom", page_boom, methods=["GET"])
    # The catch-all must stay last
    app.router.routes.insert(0, app.router.routes.pop())
    app.router.routes.insert(0, app.router.routes.pop())
    return app


@pytest_asyncio.fixture
async def faulty_client(faulty_app):
    async with make_client(faulty_app) as c:
        yield c


class TestTranslateError:

    def test_application_error_unchanged(self):
        err = NotFoundError(resource="tour", resource_id="1")
        assert translate_error(err) is err

    def test_cast_error(self):
        err = translate_error(CastError("_id", "wwwwww"))
        assert isinstance(err, InvalidFieldValueError)
        assert err.status_code == 400
        assert err.message == "Invalid _id: wwwwww."

    def test_postgres_duplicate_key(self):
        orig = Exception(
            'duplicate key value violates unique constraint "tours_name_key"\n'
            "DETAIL:  Key (name)=(The Forest Hiker) already exists."
        )
        err = translate_error(IntegrityError("INSERT INTO tours ...", {}, orig))
        assert isinstance(err, DuplicateFieldError)
        assert err.message == "Duplicate field value: The Forest Hiker. Please use another value!"

    def test_sqlite_duplicate_key(self):
        orig = Exception("UNIQUE constraint failed: tours.name")
        statement = "INSERT INTO tours (id, name, slug) VALUES (?, ?, ?)"
        err = translate_error(IntegrityError(statement, ("abc", "The Sea Explorer", "x"), orig))
        assert err.message == "Duplicate field value: The Sea Explorer. Please use another value!"

    def test_other_integrity_error_is_not_operational(self):
        orig = Exception("NOT NULL constraint failed: tours.summary")
        err = translate_error(IntegrityError("INSERT", (), orig))
        assert err.is_operational is False
        assert err.status_code == 500

    def test_schema_validation(self):
        err = translate_error(_schema_error())
        assert isinstance(err, ValidationError)
        assert err.status_code == 400
        assert err.message.startswith("Invalid input data. price:")

    def test_unexpected_exception(self):
        err = translate_error(KeyError("boom"))
        assert err.is_operational is False
        assert err.status == "error"


class TestDevelopmentMode:

    @pytest.mark.asyncio
    async def test_programming_fault_shows_detail(self, faulty_client):
        response = await faulty_client.get("/api/v1/_boom")
        assert response.status_code == 500
        body = response.json()
        assert body["status"] == "error"
        assert body["message"] == "database driver crashed"
        assert body["error"]["name"] == "RuntimeError"
        assert body["error"]["isOperational"] is False
        assert "RuntimeError" in body["stack"]

    @pytest.mark.asyncio
    async def test_operational_fault_shows_detail(self, client):
        response = await client.get("/api/v1/tours/wwwwww")
        body = response.json()
        assert body["error"]["name"] == "CastError"
        assert body["error"]["statusCode"] == 400
        assert "stack" in body


class TestProductionMode:

    @pytest.mark.asyncio
    async def test_programming_fault_is_masked_and_logged(self, faulty_client, production, caplog):
        with caplog.at_level(logging.ERROR, logger="app.error_handlers"):
            response = await faulty_client.get("/api/v1/_boom")

        assert response.status_code == 500
        assert response.json() == {"status": "error", "message": GENERIC_MESSAGE}
        assert any("database driver crashed" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_operational_fault_keeps_message(self, client, production):
        response = await client.get("/api/v1/tours/wwwwww")
        assert response.status_code == 400
        assert response.json() == {"status": "fail", "message": "Invalid _id: wwwwww."}

    @pytest.mark.asyncio
    async def test_html_page_masks_programming_fault(self, faulty_client, production):
        response = await faulty_client.get("/_boom", headers={"Accept": "text/html"})
        assert response.status_code == 500
        assert "text/html" in response.headers["content-type"]
        assert "Please try again later." in response.text
        assert "template engine crashed" not in response.text
