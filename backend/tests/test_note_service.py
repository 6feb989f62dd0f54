"""
NoteKeeper Backend: Note Service Tests
=======================================

What:  Lifecycle behaviour of NoteService against a real (in-memory SQLite)
       session and an in-memory storage gateway.

What we test:
    ✅ Create with zero images / with partial upload failure / upload timeout
    ✅ Attachment order follows input order, not completion order
    ✅ get() records last_viewed
    ✅ Every note operation is scoped to the owner (NotFoundError otherwise)
    ✅ Partial update semantics, no-op update, appended images
    ✅ Favorite toggle law
    ✅ Delete / delete_image proceed when remote deletion fails
    ✅ List ordering and filters, stats
    ✅ NoteStore wraps driver errors in DatabaseError
"""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from conftest import FakeStorageGateway
from notekeeper.exceptions import DatabaseError, NotFoundError, ValidationError
from notekeeper.schemas.note import NoteCreate, NoteUpdate
from notekeeper.services.file_service import ImageUpload
from notekeeper.services.note_service import NoteService
from notekeeper.services.note_store import NoteStore


def image(content: bytes) -> ImageUpload:
    return ImageUpload(filename=f"{content.decode()}.png", content_type="image/png", content=content)


def new_note(title="Groceries", category="Personal", content="milk, eggs", template=None) -> NoteCreate:
    return NoteCreate(title=title, category=category, content=content, template=template)


class TestCreate:

    @pytest.mark.asyncio
    async def test_create_without_images(self, db_session, user, fake_storage):
        """A note can be created with no images at all."""
        service = NoteService(storage=fake_storage)

        note = await service.create(db_session, user, new_note())

        assert note.title == "Groceries"
        assert note.category == "Personal"
        assert note.content == "milk, eggs"
        assert note.images == []
        assert note.is_favorite is False
        assert note.template is None
        assert note.last_viewed == note.created_at
        assert fake_storage.upload_calls == []

    @pytest.mark.asyncio
    async def test_create_resolves_owner_fields(self, db_session, user, fake_storage):
        service = NoteService(storage=fake_storage)

        note = await service.create(db_session, user, new_note())

        assert note.owner.id == user.id
        assert note.owner.first_name == "Ada"
        assert note.owner.last_name == "Lovelace"
        assert note.owner.email == "ada@example.com"

    @pytest.mark.asyncio
    async def test_create_trims_text_fields(self, db_session, user, fake_storage):
        service = NoteService(storage=fake_storage)

        note = await service.create(
            db_session, user, new_note(title="  Plan  ", category=" Work ", content="\n  agenda  \n"),
        )

        assert note.title == "Plan"
        assert note.category == "Work"
        assert note.content == "agenda"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("title,category", [("", "Work"), ("   ", "Work"), ("Plan", ""), ("Plan", "  ")])
    async def test_create_rejects_blank_title_or_category(
        self, db_session, user, fake_storage, title, category,
    ):
        """Validation runs before any upload and nothing is written."""
        service = NoteService(storage=fake_storage)

        with pytest.raises(ValidationError):
            await service.create(db_session, user, new_note(title=title, category=category), [image(b"a")])

        assert fake_storage.upload_calls == []
        listed = await service.list_notes(db_session, user)
        assert listed.total_count == 0

    @pytest.mark.asyncio
    async def test_failed_upload_is_skipped_and_order_kept(self, db_session, user, fake_storage):
        """[A, B(fails), C] with A finishing last still yields [A, C]."""
        fake_storage.failing_uploads.add(b"b")
        fake_storage.upload_delays[b"a"] = 0.05
        service = NoteService(storage=fake_storage)

        note = await service.create(
            db_session, user, new_note(), [image(b"a"), image(b"b"), image(b"c")],
        )

        assert [img.url for img in note.images] == [
            "https://cdn.test/notes/a",
            "https://cdn.test/notes/c",
        ]
        assert len(fake_storage.upload_calls) == 3

    @pytest.mark.asyncio
    async def test_upload_timeout_counts_as_failure(self, db_session, user):
        storage = FakeStorageGateway(timeout_seconds=0.05)
        storage.upload_delays[b"slow"] = 1.0
        service = NoteService(storage=storage)

        note = await service.create(db_session, user, new_note(), [image(b"slow"), image(b"fast")])

        assert [img.url for img in note.images] == ["https://cdn.test/notes/fast"]

    @pytest.mark.asyncio
    async def test_all_uploads_failing_still_creates_note(self, db_session, user, fake_storage):
        fake_storage.failing_uploads.update({b"a", b"b"})
        service = NoteService(storage=fake_storage)

        note = await service.create(db_session, user, new_note(), [image(b"a"), image(b"b")])

        assert note.images == []
        assert (await service.get(db_session, user, note.id)).id == note.id

    @pytest.mark.asyncio
    async def test_create_records_template(self, db_session, user, fake_storage):
        service = NoteService(storage=fake_storage)

        note = await service.create(db_session, user, new_note(template="meeting"))

        assert note.template == "meeting"


class TestGetAndList:

    @pytest.mark.asyncio
    async def test_get_updates_last_viewed(self, db_session, user, fake_storage):
        service = NoteService(storage=fake_storage)
        created = await service.create(db_session, user, new_note())

        first = await service.get(db_session, user, created.id)
        second = await service.get(db_session, user, created.id)

        assert first.last_viewed >= created.last_viewed
        assert second.last_viewed >= first.last_viewed
        assert second.updated_at == created.updated_at

    @pytest.mark.asyncio
    async def test_get_unknown_id(self, db_session, user, fake_storage):
        service = NoteService(storage=fake_storage)

        with pytest.raises(NotFoundError):
            await service.get(db_session, user, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_list_newest_first_and_owner_only(self, db_session, user, other_user, fake_storage):
        service = NoteService(storage=fake_storage)
        first = await service.create(db_session, user, new_note(title="first"))
        second = await service.create(db_session, user, new_note(title="second"))
        await service.create(db_session, other_user, new_note(title="not mine"))

        listed = await service.list_notes(db_session, user)

        assert listed.total_count == 2
        assert [n.id for n in listed.notes] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_list_filters(self, db_session, user, fake_storage):
        service = NoteService(storage=fake_storage)
        work = await service.create(db_session, user, new_note(title="Standup", category="Work", content="sprint"))
        await service.create(db_session, user, new_note(title="Recipe", category="Home", content="pasta"))
        await service.toggle_favorite(db_session, user, work.id)

        by_category = await service.list_notes(db_session, user, category="work")
        favorites = await service.list_notes(db_session, user, favorites_only=True)
        search = await service.list_notes(db_session, user, search="PASTA")

        assert [n.title for n in by_category.notes] == ["Standup"]
        assert [n.title for n in favorites.notes] == ["Standup"]
        assert [n.title for n in search.notes] == ["Recipe"]

    @pytest.mark.asyncio
    async def test_search_treats_wildcards_literally(self, db_session, user, fake_storage):
        service = NoteService(storage=fake_storage)
        await service.create(db_session, user, new_note(title="plain", content="nothing"))
        await service.create(db_session, user, new_note(title="Sale", content="50% off"))

        percent = await service.list_notes(db_session, user, search="%")
        underscore = await service.list_notes(db_session, user, search="_")

        assert [n.title for n in percent.notes] == ["Sale"]
        assert underscore.notes == []


class TestOwnership:
    """Another user's note behaves exactly like a missing one."""

    @pytest.mark.asyncio
    async def test_every_operation_is_owner_scoped(self, db_session, user, other_user, fake_storage):
        service = NoteService(storage=fake_storage)
        note = await service.create(db_session, user, new_note(), [image(b"a")])
        image_id = note.images[0].id

        with pytest.raises(NotFoundError):
            await service.get(db_session, other_user, note.id)
        with pytest.raises(NotFoundError):
            await service.update(db_session, other_user, note.id, NoteUpdate(title="stolen"))
        with pytest.raises(NotFoundError):
            await service.toggle_favorite(db_session, other_user, note.id)
        with pytest.raises(NotFoundError):
            await service.delete_image(db_session, other_user, note.id, image_id)
        with pytest.raises(NotFoundError):
            await service.delete(db_session, other_user, note.id)

        unchanged = await service.get(db_session, user, note.id)
        assert unchanged.title == "Groceries"
        assert unchanged.is_favorite is False
        assert len(unchanged.images) == 1
        assert fake_storage.delete_calls == []


class TestUpdate:

    @pytest.mark.asyncio
    async def test_noop_update_only_refreshes_updated_at(self, db_session, user, fake_storage):
        service = NoteService(storage=fake_storage)
        before = await service.create(db_session, user, new_note(), [image(b"a")])

        after = await service.update(db_session, user, before.id, NoteUpdate())

        assert after.title == before.title
        assert after.category == before.category
        assert after.content == before.content
        assert after.images == before.images
        assert after.is_favorite == before.is_favorite
        assert after.created_at == before.created_at
        assert after.updated_at >= before.updated_at

    @pytest.mark.asyncio
    async def test_blank_title_and_category_are_ignored(self, db_session, user, fake_storage):
        service = NoteService(storage=fake_storage)
        note = await service.create(db_session, user, new_note())

        updated = await service.update(db_session, user, note.id, NoteUpdate(title="  ", category=""))

        assert updated.title == "Groceries"
        assert updated.category == "Personal"

    @pytest.mark.asyncio
    async def test_content_can_be_cleared(self, db_session, user, fake_storage):
        service = NoteService(storage=fake_storage)
        note = await service.create(db_session, user, new_note())

        updated = await service.update(db_session, user, note.id, NoteUpdate(content=""))

        assert updated.content == ""

    @pytest.mark.asyncio
    async def test_fields_are_trimmed(self, db_session, user, fake_storage):
        service = NoteService(storage=fake_storage)
        note = await service.create(db_session, user, new_note())

        updated = await service.update(db_session, user, note.id, NoteUpdate(title=" New ", category=" Work ", content="  body  "))

        assert updated.title == "New"
        assert updated.category == "Work"
        assert updated.content == "body"

    @pytest.mark.asyncio
    async def test_new_images_are_appended(self, db_session, user, fake_storage):
        fake_storage.failing_uploads.add(b"d")
        service = NoteService(storage=fake_storage)
        note = await service.create(db_session, user, new_note(), [image(b"a"), image(b"b")])

        updated = await service.update(
            db_session, user, note.id, NoteUpdate(), [image(b"c"), image(b"d")],
        )

        assert [img.url.rsplit("/", 1)[-1] for img in updated.images] == ["a", "b", "c"]
        assert [img.id for img in updated.images[:2]] == [img.id for img in note.images]


class TestFavorite:

    @pytest.mark.asyncio
    async def test_toggle_twice_restores_flag(self, db_session, user, fake_storage):
        service = NoteService(storage=fake_storage)
        note = await service.create(db_session, user, new_note())

        once = await service.toggle_favorite(db_session, user, note.id)
        twice = await service.toggle_favorite(db_session, user, note.id)

        assert once.is_favorite is True
        assert twice.is_favorite is False


class TestDelete:

    @pytest.mark.asyncio
    async def test_delete_removes_remote_objects(self, db_session, user, fake_storage):
        service = NoteService(storage=fake_storage)
        note = await service.create(db_session, user, new_note(), [image(b"a"), image(b"b")])

        await service.delete(db_session, user, note.id)

        assert fake_storage.delete_calls == ["notes/a", "notes/b"]
        assert fake_storage.objects == {}
        with pytest.raises(NotFoundError):
            await service.get(db_session, user, note.id)

    @pytest.mark.asyncio
    async def test_delete_succeeds_when_every_remote_delete_fails(self, db_session, user, fake_storage):
        service = NoteService(storage=fake_storage)
        note = await service.create(db_session, user, new_note(), [image(b"a"), image(b"b")])
        fake_storage.fail_deletes = True

        await service.delete(db_session, user, note.id)

        assert fake_storage.delete_calls == ["notes/a", "notes/b"]
        with pytest.raises(NotFoundError):
            await service.get(db_session, user, note.id)

    @pytest.mark.asyncio
    async def test_delete_image_keeps_remaining_order(self, db_session, user, fake_storage):
        service = NoteService(storage=fake_storage)
        note = await service.create(
            db_session, user, new_note(), [image(b"a"), image(b"b"), image(b"c")],
        )

        updated = await service.delete_image(db_session, user, note.id, note.images[1].id)

        assert [img.url.rsplit("/", 1)[-1] for img in updated.images] == ["a", "c"]
        assert fake_storage.delete_calls == ["notes/b"]

    @pytest.mark.asyncio
    async def test_delete_image_when_remote_delete_fails(self, db_session, user, fake_storage):
        service = NoteService(storage=fake_storage)
        note = await service.create(db_session, user, new_note(), [image(b"a")])
        fake_storage.fail_deletes = True

        updated = await service.delete_image(db_session, user, note.id, note.images[0].id)

        assert updated.images == []
        assert "notes/a" in fake_storage.objects

    @pytest.mark.asyncio
    async def test_delete_image_unknown_image(self, db_session, user, fake_storage):
        service = NoteService(storage=fake_storage)
        note = await service.create(db_session, user, new_note(), [image(b"a")])

        with pytest.raises(NotFoundError):
            await service.delete_image(db_session, user, note.id, uuid.uuid4())

        assert fake_storage.delete_calls == []


class TestStats:

    @pytest.mark.asyncio
    async def test_stats(self, db_session, user, fake_storage):
        service = NoteService(storage=fake_storage)
        a = await service.create(db_session, user, new_note(category="Work"), [image(b"a"), image(b"b")])
        await service.create(db_session, user, new_note(category="work"))
        await service.create(db_session, user, new_note(category="Home"), [image(b"c")])
        await service.toggle_favorite(db_session, user, a.id)

        stats = await service.stats(db_session, user)

        assert stats.total_notes == 3
        assert stats.favorite_notes == 1
        assert stats.notes_with_images == 2
        assert stats.total_images == 3
        assert stats.categories_count == 2
        assert stats.recent_notes == 3
        assert stats.category_breakdown == {"work": 2, "home": 1}


class TestNoteStoreErrors:

    @pytest.mark.asyncio
    async def test_driver_error_becomes_database_error(self):
        db = AsyncMock()
        db.execute = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("gone")))

        with pytest.raises(DatabaseError):
            await NoteStore().get_owned(db, uuid.uuid4(), uuid.uuid4())

    @pytest.mark.asyncio
    async def test_flush_error_becomes_database_error(self):
        db = AsyncMock()
        db.add = MagicMock()
        db.flush = AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("disk full")))

        with pytest.raises(DatabaseError):
            await NoteStore().add(db, MagicMock(id=uuid.uuid4()))
