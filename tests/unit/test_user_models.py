"""
Unit tests for user schemas and repository helpers.
"""

import pytest
from datetime import datetime, timezone
from bson import ObjectId
from pydantic import ValidationError

from api.src.models.user import CreateUserRequest, UpdateUserRequest, UserResponse
from api.src.repositories.user_repo import parse_object_id, utcnow


class TestCreateUserRequest:
    """CreateUserRequest validation."""

    def test_valid(self):
        request = CreateUserRequest(name="  Jane Doe ", email="jane@example.com", age=31)
        assert request.name == "Jane Doe"
        assert request.age == 31

    def test_age_optional(self):
        assert CreateUserRequest(name="Jane", email="jane@example.com").age is None

    @pytest.mark.parametrize(
        "payload,field",
        [
            ({"email": "jane@example.com"}, "name"),
            ({"name": "", "email": "jane@example.com"}, "name"),
            ({"name": "Jane", "email": "jane"}, "email"),
            ({"name": "Jane", "email": "jane@example.com", "age": -1}, "age"),
            ({"name": "Jane", "email": "jane@example.com", "age": 151}, "age"),
        ],
    )
    def test_invalid(self, payload, field):
        with pytest.raises(ValidationError) as exc_info:
            CreateUserRequest(**payload)
        assert any(error["loc"] == (field,) for error in exc_info.value.errors())


class TestUpdateUserRequest:
    """UpdateUserRequest.changes only reports fields sent by the client."""

    def test_changes_excludes_unset(self):
        assert UpdateUserRequest(age=40).changes() == {"age": 40}

    def test_explicit_null_is_a_change(self):
        assert UpdateUserRequest(age=None).changes() == {"age": None}

    def test_empty(self):
        assert UpdateUserRequest().changes() == {}


class TestUserResponse:
    """Conversion from stored documents."""

    def test_from_document(self):
        oid = ObjectId()
        created = datetime(2024, 5, 1, tzinfo=timezone.utc)

        user = UserResponse.from_document(
            {"_id": oid, "name": "Jane", "email": "jane@example.com", "created_at": created}
        )

        assert user.id == str(oid)
        assert user.age is None
        assert user.updated_at is None


class TestRepositoryHelpers:
    """parse_object_id and utcnow."""

    def test_parse_valid_object_id(self):
        oid = ObjectId()
        assert parse_object_id(str(oid)) == oid

    @pytest.mark.parametrize("raw", ["", "xyz", "65a0f0f0f0f0f0f0f0f0f0f", "65a0f0f0f0f0f0f0f0f0f0fz"])
    def test_parse_malformed_object_id(self, raw):
        assert parse_object_id(raw) is None

    def test_utcnow_has_millisecond_precision(self):
        now = utcnow()
        assert now.tzinfo is timezone.utc
        assert now.microsecond % 1000 == 0


class TestUpdateRejectsNulls:
    """Required document fields cannot be nulled out."""

    @pytest.mark.parametrize("field", ["name", "email"])
    def test_explicit_null(self, field):
        with pytest.raises(ValidationError):
            UpdateUserRequest(**{field: None})
