"""Tests for the user store and its views."""
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from otp_service.core.exceptions import (
    DuplicateEmailError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from otp_service.models.user import UserRole
from otp_service.services.user_store import to_public

EXPIRES_AT = datetime(2026, 1, 1, 12, 10, tzinfo=timezone.utc)


async def test_create_applies_defaults(store):
    user = await store.create({"name": "  Ann  ", "email": "Ann@X.com"})

    assert isinstance(user.id, uuid.UUID)
    assert user.name == "Ann"
    assert user.email == "ann@x.com"
    assert user.role == UserRole.USER
    assert user.is_active is True
    assert user.is_verified is False
    assert user.otp_hash is None and user.otp_expires_at is None
    assert user.created_at.tzinfo is not None


async def test_find_by_email_is_case_insensitive(store):
    created = await store.create({"name": "Ann", "email": "ann@x.com"})
    await store.commit()

    found = await store.find_by_email("  ANN@x.COM ")
    assert found is not None
    assert found.id == created.id


async def test_find_unknown_email_returns_none(store):
    assert await store.find_by_email("nobody@x.com") is None


async def test_otp_fields_round_trip(store, async_session):
    created = await store.create({
        "name": "Ann",
        "email": "ann@x.com",
        "otp_hash": "hash",
        "otp_expires_at": EXPIRES_AT,
    })
    await store.commit()
    async_session.expunge_all()

    found = await store.get_by_id(created.id)
    assert found.otp_hash == "hash"
    assert found.otp_expires_at == EXPIRES_AT
    assert found.has_pending_otp


async def test_duplicate_email_is_rejected(store):
    await store.create({"name": "Ann", "email": "ann@x.com"})
    await store.commit()

    with pytest.raises(DuplicateEmailError) as exc_info:
        await store.create({"name": "Other", "email": "ANN@x.com"})
    assert exc_info.value.status_code == 400


@pytest.mark.parametrize("fields, message", [
    ({"email": "ann@x.com"}, "Please provide a name"),
    ({"name": "   ", "email": "ann@x.com"}, "Please provide a name"),
    ({"name": "A" * 51, "email": "ann@x.com"}, "Name cannot be more than 50 characters"),
    ({"name": "Ann"}, "Please provide an email"),
    ({"name": "Ann", "email": "not-an-email"}, "Please provide a valid email"),
    ({"name": "Ann", "email": "ann@x"}, "Please provide a valid email"),
    ({"name": "Ann", "email": "ann@x.com", "role": "owner"}, "Invalid role"),
])
async def test_create_validation(store, fields, message):
    with pytest.raises(ValidationError) as exc_info:
        await store.create(fields)
    assert exc_info.value.message == message


async def test_name_of_fifty_characters_is_accepted(store):
    user = await store.create({"name": "A" * 50, "email": "ann@x.com"})
    assert len(user.name) == 50


async def test_update_applies_only_given_fields(store):
    user = await store.create({"name": "Ann", "email": "ann@x.com"})

    updated = await store.update(user.id, {"name": "Annie"})
    assert updated.name == "Annie"
    assert updated.email == "ann@x.com"


async def test_update_unknown_user(store):
    with pytest.raises(NotFoundError):
        await store.update(uuid.uuid4(), {"name": "Ann"})


async def test_update_rejects_unpaired_otp_fields(store, async_session):
    user = await store.create({"name": "Ann", "email": "ann@x.com"})
    await store.commit()

    with pytest.raises(StoreError):
        await store.update(user.id, {"otp_hash": "hash"})

    # the rejected values must not reach the row
    await store.commit()
    async_session.expunge_all()
    found = await store.get_by_id(user.id)
    assert found.otp_hash is None
    assert found.otp_expires_at is None


async def test_create_rejects_unpaired_otp_fields(store):
    with pytest.raises(StoreError):
        await store.create({
            "name": "Ann",
            "email": "ann@x.com",
            "otp_expires_at": EXPIRES_AT,
        })


async def test_update_rejects_unknown_fields(store):
    user = await store.create({"name": "Ann", "email": "ann@x.com"})

    with pytest.raises(StoreError):
        await store.update(user.id, {"id": uuid.uuid4()})


async def test_save_writes_record_back(store):
    user = await store.create({"name": "Ann", "email": "ann@x.com"})

    user.otp_hash = "hash"
    user.otp_expires_at = EXPIRES_AT
    user.is_verified = True
    saved = await store.save(user)

    assert saved.is_verified is True
    assert saved.otp_hash == "hash"
    assert saved.updated_at >= user.created_at


async def test_to_public_strips_otp_fields(store):
    user = await store.create({
        "name": "Ann",
        "email": "ann@x.com",
        "otp_hash": "hash",
        "otp_expires_at": EXPIRES_AT,
    })

    public = to_public(user).model_dump()
    assert set(public) == {
        "id", "name", "email", "role", "is_active",
        "is_verified", "created_at", "updated_at",
    }
    assert "hash" not in str(public)


async def test_rollback_discards_pending_changes(store):
    user = await store.create({"name": "Ann", "email": "ann@x.com"})
    await store.commit()

    await store.update(user.id, {"name": "Changed"})
    await store.rollback()

    found = await store.get_by_id(user.id)
    assert found.name == "Ann"
