"""
Integration tests for ModelHandle against in-memory SQLite.
"""

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker

from entity_repository.db import FindOptions, ModelHandle, record_to_dict
from sample_models import MembershipRecord, TagRecord, UserRecord


async def insert_user(handle, **values):
    return await handle.build({"name": "user", **values}, is_new_record=True).save()


class TestMetadata:
    @pytest.mark.anyio
    async def test_user_table(self, user_handle):
        assert user_handle.primary_keys == ("id",)
        assert user_handle.table_name == "users"
        assert user_handle.paranoid is True

    @pytest.mark.anyio
    async def test_natural_key_table(self, tag_handle):
        assert tag_handle.primary_keys == ("code",)
        assert tag_handle.paranoid is False

    @pytest.mark.anyio
    async def test_composite_key_order(self, session_maker):
        handle = ModelHandle(session_maker, MembershipRecord)
        assert handle.primary_keys == ("user_id", "team_id")

    @pytest.mark.anyio
    async def test_build_drops_nulls_the_store_generates(self, user_handle):
        built = user_handle.build(
            {"id": None, "name": "x", "email_address": None, "created_at": None, "status": None},
            is_new_record=True,
        )
        assert built.values == {"name": "x", "email_address": None}

    @pytest.mark.anyio
    async def test_unknown_column_is_rejected(self, user_handle):
        with pytest.raises(ValueError, match="Unknown column 'nope'"):
            user_handle.column("nope")


class TestBuiltRecord:
    @pytest.mark.anyio
    async def test_save_with_default_session_factory(self, engine):
        handle = ModelHandle(async_sessionmaker(engine), UserRecord)

        record = await insert_user(handle, name="plain")
        updated = await handle.build({"id": record.id, "name": "again"}, is_new_record=False).save()

        assert record_to_dict(record)["name"] == "plain"
        assert record.created_at is not None
        assert updated.name == "again"

    @pytest.mark.anyio
    async def test_insert_returns_generated_fields(self, user_handle):
        record = await insert_user(user_handle, email_address="a@example.com")

        assert isinstance(record, UserRecord)
        assert record.id
        assert record.created_at is not None
        assert record.updated_at is not None
        assert record.status == "active"

    @pytest.mark.anyio
    async def test_full_row_update(self, user_handle):
        record = await insert_user(user_handle, name="before", email_address="b@example.com")

        updated = await user_handle.build(
            {"id": record.id, "name": "after", "email_address": None}, is_new_record=False
        ).save()

        assert updated.id == record.id
        assert updated.name == "after"
        assert updated.email_address is None
        assert updated.created_at == record.created_at

    @pytest.mark.anyio
    async def test_destroy_unsaved_is_a_no_op(self, user_handle):
        await insert_user(user_handle)

        assert await user_handle.build({"name": "user"}, is_new_record=True).destroy() == 0
        assert await user_handle.count({}) == 1

    @pytest.mark.anyio
    async def test_destroy_persisted_soft_then_hard(self, user_handle):
        record = await insert_user(user_handle)
        built = user_handle.build({"id": record.id, "name": "user"}, is_new_record=False)

        assert await built.destroy() == 1
        assert await user_handle.count({}) == 0
        assert await user_handle.count({}, paranoid=False) == 1

        assert await built.destroy(force=True) == 1
        assert await user_handle.count({}, paranoid=False) == 0


class TestFind:
    @pytest.fixture
    async def users(self, user_handle):
        return [
            await insert_user(user_handle, name=name, team_id=team)
            for name, team in (("ann", 1), ("bob", 1), ("cid", 2))
        ]

    @pytest.mark.anyio
    async def test_find_one_orm_and_raw(self, user_handle, users):
        record = await user_handle.find_one(FindOptions(where={"name": "bob"}))
        raw = await user_handle.find_one(FindOptions(where={"name": "bob"}, raw=True))

        assert isinstance(record, UserRecord)
        assert record.id == users[1].id
        assert isinstance(raw, dict)
        assert raw["id"] == users[1].id
        assert raw["deleted_at"] is None

    @pytest.mark.anyio
    async def test_find_one_without_match(self, user_handle, users):
        assert await user_handle.find_one(FindOptions(where={"name": "zed"})) is None

    @pytest.mark.anyio
    async def test_find_all_order_offset_limit(self, user_handle, users):
        options = FindOptions(order_by=("-name",), offset=1, limit=1, raw=True)

        rows = await user_handle.find_all(options)

        assert [row["name"] for row in rows] == ["bob"]

    @pytest.mark.anyio
    async def test_sequence_values_mean_membership(self, user_handle, users):
        rows = await user_handle.find_all(
            FindOptions(where={"name": ["ann", "cid"]}, order_by=("name",))
        )
        assert [row.name for row in rows] == ["ann", "cid"]

    @pytest.mark.anyio
    async def test_none_means_is_null(self, user_handle, users):
        await insert_user(user_handle, name="dee")

        rows = await user_handle.find_all(FindOptions(where={"team_id": None}))

        assert [row.name for row in rows] == ["dee"]

    @pytest.mark.anyio
    async def test_unknown_where_column(self, user_handle):
        with pytest.raises(ValueError):
            await user_handle.find_all(FindOptions(where={"nope": 1}))

    @pytest.mark.anyio
    async def test_count(self, user_handle, users):
        assert await user_handle.count({"team_id": 1}) == 2
        assert await user_handle.count({}) == 3


class TestWrites:
    @pytest.mark.anyio
    async def test_update_restricted_to_fields(self, user_handle):
        record = await insert_user(user_handle, name="n", email_address="keep@example.com")

        count = await user_handle.update(
            {"name": "renamed", "email_address": "lost@example.com"},
            where={"id": record.id},
            fields=["name"],
        )

        row = await user_handle.find_one(FindOptions(where={"id": record.id}, raw=True))
        assert count == 1
        assert row["name"] == "renamed"
        assert row["email_address"] == "keep@example.com"

    @pytest.mark.anyio
    async def test_update_with_no_fields_writes_nothing(self, user_handle):
        assert await user_handle.update({"name": "x"}, where={"id": 1}, fields=[]) == 0

    @pytest.mark.anyio
    async def test_update_skips_soft_deleted_rows(self, user_handle):
        record = await insert_user(user_handle)
        await user_handle.destroy({"id": record.id})

        assert await user_handle.update({"name": "x"}, where={"id": record.id}, fields=["name"]) == 0

    @pytest.mark.anyio
    async def test_bulk_soft_delete_only_counts_live_rows(self, user_handle):
        for name in ("a", "b"):
            await insert_user(user_handle, name=name, team_id=4)

        assert await user_handle.destroy({"team_id": 4}) == 2
        assert await user_handle.destroy({"team_id": 4}) == 0
        assert await user_handle.destroy({"team_id": 4}, force=True) == 2

    @pytest.mark.anyio
    async def test_plain_table_deletes_hard(self, tag_handle):
        await tag_handle.build({"code": "py", "label": "Python"}, is_new_record=True).save()

        assert await tag_handle.destroy({"code": "py"}) == 1
        assert await tag_handle.count({}) == 0

    @pytest.mark.anyio
    async def test_upsert_inserts_then_updates(self, user_handle):
        where = {"email_address": "u@example.com"}

        first = await user_handle.upsert({"name": "first"}, {"name": "second"}, where)
        second = await user_handle.upsert({"name": "first"}, {"name": "second"}, where)

        assert first["name"] == "first"
        assert first["email_address"] == "u@example.com"
        assert second["id"] == first["id"]
        assert second["name"] == "second"
        assert await user_handle.count({}) == 1

    @pytest.mark.anyio
    async def test_upsert_without_update_values_keeps_row(self, tag_handle):
        await tag_handle.upsert({"label": "one"}, {}, {"code": "t"})

        result = await tag_handle.upsert({"label": "two"}, {}, {"code": "t"})

        row = await tag_handle.find_one(FindOptions(where={"code": "t"}, raw=True))
        assert result is None
        assert row == {"code": "t", "label": "one"}
