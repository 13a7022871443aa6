"""
Tests for the SQLAlchemy user store.
"""
import asyncio

import pytest

from sso_service.exceptions import ConflictError, StoreError
from sso_service.users.store import SQLAlchemyUserStore


def _fields(email="store@example.com", **overrides):
    fields = {
        "name": "Store User",
        "email": email,
        "hashed_password": "$2b$04$placeholderplaceholderplaceholderplaceholderplacehol",
        "company": "Acme",
        "roles": ["user"],
    }
    fields.update(overrides)
    return fields


@pytest.mark.asyncio
async def test_insert_assigns_id_and_finds(store):
    created = await store.insert(_fields())
    assert created.id
    assert created.created_at is not None

    by_id = await store.find_by_id(created.id)
    by_email = await store.find_by_email("store@example.com")
    assert by_id == by_email
    assert by_id.roles == ["user"]


@pytest.mark.asyncio
async def test_insert_ignores_store_managed_fields(store):
    created = await store.insert(_fields(id="chosen-by-client"))
    assert created.id != "chosen-by-client"


@pytest.mark.asyncio
async def test_unique_constraint_is_authoritative(store):
    await store.insert(_fields())
    with pytest.raises(ConflictError):
        await store.insert(_fields(name="Someone Else"))
    assert await store.count() == 1


@pytest.mark.asyncio
async def test_missing_records(store):
    assert await store.find_by_id("missing") is None
    assert await store.find_by_email("missing@example.com") is None
    assert await store.update("missing", {"name": "x"}) is None
    assert await store.delete("missing") is False


@pytest.mark.asyncio
async def test_update_and_email_conflict(store):
    first = await store.insert(_fields())
    second = await store.insert(_fields(email="other@example.com"))

    updated = await store.update(first.id, {"name": "Renamed", "roles": ["a", "b"]})
    assert updated.name == "Renamed"
    assert updated.roles == ["a", "b"]

    with pytest.raises(ConflictError):
        await store.update(second.id, {"email": "store@example.com"})
    assert (await store.find_by_id(second.id)).email == "other@example.com"


@pytest.mark.asyncio
async def test_list_page_and_count(store):
    for i in range(7):
        await store.insert(_fields(email=f"user{i}@example.com"))

    assert await store.count() == 7
    assert len(await store.list_page(0, 5)) == 5
    assert len(await store.list_page(5, 5)) == 2
    assert await store.list_page(10, 5) == []


@pytest.mark.asyncio
async def test_delete(store):
    created = await store.insert(_fields())
    assert await store.delete(created.id) is True
    assert await store.find_by_id(created.id) is None


@pytest.mark.asyncio
async def test_store_call_timeout(store):
    slow_store = SQLAlchemyUserStore(store._session_factory, timeout=0.01)

    async def slow():
        await asyncio.sleep(1)

    with pytest.raises(StoreError):
        await slow_store._run("slow", slow())
