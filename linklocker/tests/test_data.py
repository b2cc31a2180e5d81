import unittest
from datetime import datetime, timezone

from linklocker import data
from linklocker.constants import (
    COMMUNITY_LINKS_COLLECTION,
    DOWNLOADS_COLLECTION,
    SETTINGS_COLLECTION,
    SETTINGS_DOC_ID,
    USERS_COLLECTION,
)
from linklocker.errors import NotFound
from linklocker.store import InMemoryDocumentStore
from linklocker.tests.test_store import ticking_clock
from linklocker.types import (
    CommunityLinkInput,
    DownloadInput,
    FileType,
    UserRole,
)


def _comment(comment_id, created_at, content="hi"):
    return {
        "id": comment_id,
        "author": {"id": "u", "name": "U", "avatarUrl": "a.png"},
        "content": content,
        "createdAt": created_at,
    }


class DataTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore(clock=ticking_clock())

    async def _user(self, name="Ana", email="ana@example.com"):
        return await data.create_user(
            self.store,
            name=name,
            email=email,
            password="secret",
            role=UserRole.USER,
            avatar_url="https://placehold.co/100x100.png",
        )

    async def _download(self, title="Alien", **overrides):
        fields = dict(
            title=title,
            image_url="https://img.example/alien.png",
            file_type=FileType.PELICULA_MKV_MP4,
            download_url="https://dl.example/alien",
        )
        fields.update(overrides)
        return await data.create_download(self.store, DownloadInput(**fields))


class DownloadTests(DataTestCase):
    async def test_create_download_hydrates_entity(self):
        download = await self._download()

        self.assertTrue(download.id)
        self.assertEqual(download.title, "Alien")
        self.assertEqual(download.file_type, FileType.PELICULA_MKV_MP4)
        self.assertEqual(download.created_at, "2024-01-01T00:00:00.000Z")
        self.assertEqual(download.comments, [])
        self.assertIsNone(download.description)

        stored = self.store.collections[DOWNLOADS_COLLECTION][download.id]
        self.assertNotIn("description", stored)
        self.assertEqual(stored["fileType"], "pelicula-mkv-mp4")
        self.assertEqual(stored["imageUrl"], "https://img.example/alien.png")

    async def test_list_downloads_sorted_by_title(self):
        await self._download("Zodiac")
        await self._download("Alien")
        await self._download("Memento")

        titles = [d.title for d in await data.list_downloads(self.store)]
        self.assertEqual(titles, ["Alien", "Memento", "Zodiac"])

    async def test_get_download_absent_returns_none(self):
        self.assertIsNone(await data.get_download(self.store, "missing"))

    async def test_update_download_merges_supplied_fields(self):
        download = await self._download(description="old")

        updated = await data.update_download(
            self.store,
            download.id,
            {"title": "Aliens", "file_type": "pelicula-iso"},
        )

        self.assertEqual(updated.title, "Aliens")
        self.assertEqual(updated.file_type, FileType.PELICULA_ISO)
        self.assertEqual(updated.description, "old")
        self.assertEqual(updated.download_url, download.download_url)
        self.assertEqual(updated.created_at, download.created_at)

    async def test_update_download_missing_raises_not_found(self):
        with self.assertRaises(NotFound):
            await data.update_download(self.store, "missing", {"title": "x"})

    async def test_update_download_rejects_unknown_fields(self):
        download = await self._download()
        with self.assertRaises(ValueError):
            await data.update_download(self.store, download.id, {"comments": []})

    async def test_delete_download(self):
        download = await self._download()
        await data.delete_download(self.store, download.id)
        self.assertIsNone(await data.get_download(self.store, download.id))
        # Deleting again is not an error.
        await data.delete_download(self.store, download.id)


class CommentTests(DataTestCase):
    async def test_add_comment_appends_one_comment(self):
        user = await self._user()
        download = await self._download()

        updated = await data.add_comment(self.store, download.id, "nice", user)

        self.assertEqual(len(updated.comments), 1)
        comment = updated.comments[0]
        self.assertEqual(comment.content, "nice")
        self.assertEqual(comment.author.id, user.id)
        self.assertEqual(comment.author.name, "Ana")
        self.assertEqual(comment.author.avatar_url, user.avatar_url)
        self.assertTrue(comment.id.startswith("comment-"))
        self.assertTrue(comment.created_at.endswith("Z"))

    async def test_comment_ids_are_distinct(self):
        user = await self._user()
        download = await self._download()
        await data.add_comment(self.store, download.id, "one", user)
        updated = await data.add_comment(self.store, download.id, "two", user)
        ids = {c.id for c in updated.comments}
        self.assertEqual(len(ids), 2)

    async def test_add_comment_missing_download_raises_not_found(self):
        user = await self._user()
        with self.assertRaises(NotFound):
            await data.add_comment(self.store, "missing", "nice", user)

    async def test_add_then_delete_restores_comment_count(self):
        user = await self._user()
        download = await self._download()
        await data.add_comment(self.store, download.id, "first", user)
        before = len((await data.get_download(self.store, download.id)).comments)

        updated = await data.add_comment(self.store, download.id, "second", user)
        new_comment = next(c for c in updated.comments if c.content == "second")
        await data.delete_comment(self.store, download.id, new_comment.id)

        after = await data.get_download(self.store, download.id)
        self.assertEqual(len(after.comments), before)
        self.assertEqual([c.content for c in after.comments], ["first"])

    async def test_delete_unknown_comment_is_a_no_op(self):
        user = await self._user()
        download = await self._download()
        await data.add_comment(self.store, download.id, "keep", user)

        await data.delete_comment(self.store, download.id, "comment-unknown")

        after = await data.get_download(self.store, download.id)
        self.assertEqual(len(after.comments), 1)

    async def test_delete_comment_missing_download_raises_not_found(self):
        with self.assertRaises(NotFound):
            await data.delete_comment(self.store, "missing", "comment-1")

    async def test_stored_comment_timestamps_are_normalized(self):
        await self.store.set_document(
            DOWNLOADS_COLLECTION,
            "d1",
            {
                "title": "Old",
                "imageUrl": "i",
                "fileType": "serie-iso",
                "downloadUrl": "u",
                "createdAt": datetime(2023, 5, 1, 8, 30, tzinfo=timezone.utc),
                "comments": [
                    _comment("c1", "2024-03-01T10:00:00Z"),
                    _comment("c2", datetime(2024, 3, 2, tzinfo=timezone.utc)),
                ],
            },
        )

        download = await data.get_download(self.store, "d1")

        self.assertEqual(download.created_at, "2023-05-01T08:30:00.000Z")
        self.assertEqual(
            [c.created_at for c in download.comments],
            ["2024-03-01T10:00:00.000Z", "2024-03-02T00:00:00.000Z"],
        )

    async def test_epoch_millisecond_comment_timestamps_are_normalized(self):
        await self.store.set_document(
            DOWNLOADS_COLLECTION,
            "d1",
            {
                "title": "Old",
                "imageUrl": "i",
                "fileType": "serie-iso",
                "downloadUrl": "u",
                "createdAt": datetime(2023, 5, 1, tzinfo=timezone.utc),
                "comments": [_comment("c1", 1709287200000)],
            },
        )

        download = await data.get_download(self.store, "d1")

        self.assertEqual(download.comments[0].created_at, "2024-03-01T10:00:00.000Z")

    async def test_delete_comment_keeps_other_comments_as_stored(self):
        kept_at = datetime(2024, 3, 2, tzinfo=timezone.utc)
        kept = {**_comment("c1", kept_at), "edited": True}
        await self.store.set_document(
            DOWNLOADS_COLLECTION,
            "d1",
            {
                "title": "Old",
                "imageUrl": "i",
                "fileType": "serie-iso",
                "downloadUrl": "u",
                "comments": [kept, _comment("c2", "2024-03-03T00:00:00.000Z")],
            },
        )

        await data.delete_comment(self.store, "d1", "c2")

        stored = self.store.collections[DOWNLOADS_COLLECTION]["d1"]["comments"]
        self.assertEqual(stored, [kept])
        self.assertIsInstance(stored[0]["createdAt"], datetime)

    async def test_get_all_comments_most_recent_first(self):
        for doc_id, title, comments in [
            (
                "d1",
                "Alien",
                [
                    _comment("c1", "2024-01-01T00:00:00.000Z"),
                    _comment("c3", "2024-01-03T00:00:00.000Z"),
                ],
            ),
            ("d2", "Brazil", [_comment("c2", "2024-01-02T00:00:00.000Z")]),
            ("d3", "Cube", []),
        ]:
            await self.store.set_document(
                DOWNLOADS_COLLECTION,
                doc_id,
                {
                    "title": title,
                    "imageUrl": "i",
                    "fileType": "pelicula-iso",
                    "downloadUrl": "u",
                    "createdAt": datetime(2024, 1, 1, tzinfo=timezone.utc),
                    "comments": comments,
                },
            )

        comments = await data.get_all_comments(self.store)

        self.assertEqual([c.id for c in comments], ["c3", "c2", "c1"])
        self.assertEqual(comments[0].link_id, "d1")
        self.assertEqual(comments[0].link_title, "Alien")
        self.assertEqual(comments[1].link_title, "Brazil")


class UserTests(DataTestCase):
    async def test_create_user_starts_with_zero_points(self):
        user = await self._user()
        self.assertEqual(user.points, 0)
        self.assertEqual(user.role, UserRole.USER)
        self.assertEqual(user.created_at, "2024-01-01T00:00:00.000Z")

    async def test_list_users_oldest_first(self):
        first = await self._user("Ana", "ana@example.com")
        second = await self._user("Bo", "bo@example.com")
        users = await data.list_users(self.store)
        self.assertEqual([u.id for u in users], [first.id, second.id])

    async def test_find_users_by_email(self):
        user = await self._user()
        found = await data.find_users_by_email(self.store, "ana@example.com")
        self.assertEqual([u.id for u in found], [user.id])
        self.assertEqual(await data.find_users_by_email(self.store, "x@y.z"), [])

    async def test_update_user_avatar(self):
        user = await self._user()
        updated = await data.update_user_avatar(self.store, user.id, "new.png")
        self.assertEqual(updated.avatar_url, "new.png")
        self.assertEqual(updated.name, user.name)

    async def test_update_user_avatar_missing_raises_not_found(self):
        with self.assertRaises(NotFound):
            await data.update_user_avatar(self.store, "missing", "new.png")

    async def test_delete_user(self):
        user = await self._user()
        await data.delete_user(self.store, user.id)
        self.assertIsNone(await data.get_user(self.store, user.id))


class SettingsTests(DataTestCase):
    async def test_defaults_when_document_absent(self):
        settings = await data.get_settings(self.store)
        self.assertTrue(settings.is_registration_open)
        self.assertEqual(settings.announcement, "")

    async def test_defaults_replace_wrongly_typed_fields(self):
        await self.store.set_document(
            SETTINGS_COLLECTION,
            SETTINGS_DOC_ID,
            {"isRegistrationOpen": "no", "announcement": 42},
        )
        settings = await data.get_settings(self.store)
        self.assertTrue(settings.is_registration_open)
        self.assertEqual(settings.announcement, "")

    async def test_setters_preserve_the_other_field(self):
        await data.set_announcement(self.store, "Maintenance tonight")
        await data.set_registration_status(self.store, False)

        self.assertFalse(await data.get_registration_status(self.store))
        self.assertEqual(
            await data.get_announcement(self.store), "Maintenance tonight"
        )

        await data.set_announcement(self.store, "")
        self.assertFalse(await data.get_registration_status(self.store))


class CommunityLinkTests(DataTestCase):
    async def _link(self, author, title="Docs"):
        return await data.add_community_link(
            self.store,
            CommunityLinkInput(
                title=title,
                url="https://example.com/" + title,
                file_type=FileType.DOCUMENTAL_ISO,
            ),
            author,
        )

    async def test_add_community_link_embeds_author_snapshot(self):
        author = await self._user()
        link = await self._link(author)

        self.assertEqual(link.author.id, author.id)
        self.assertEqual(link.author.name, author.name)
        self.assertEqual(link.comments, [])
        self.assertTrue(link.created_at.endswith("Z"))

        await data.update_user_avatar(self.store, author.id, "changed.png")
        reloaded = await data.get_community_link(self.store, link.id)
        self.assertEqual(reloaded.author.avatar_url, author.avatar_url)

    async def test_list_community_links_newest_first(self):
        author = await self._user()
        older = await self._link(author, "older")
        newer = await self._link(author, "newer")
        links = await data.list_community_links(self.store)
        self.assertEqual([link.id for link in links], [newer.id, older.id])

    async def test_comment_awards_one_point_to_link_author(self):
        author = await self._user("Ana", "ana@example.com")
        commenter = await self._user("Bo", "bo@example.com")
        link = await self._link(author)

        updated = await data.add_comment_to_community_link(
            self.store, link.id, "thanks", commenter
        )

        self.assertEqual(len(updated.comments), 1)
        self.assertEqual(updated.comments[0].author.id, commenter.id)
        self.assertEqual((await data.get_user(self.store, author.id)).points, 1)
        self.assertEqual((await data.get_user(self.store, commenter.id)).points, 0)

    async def test_comment_on_missing_link_raises_not_found(self):
        user = await self._user()
        with self.assertRaises(NotFound):
            await data.add_comment_to_community_link(self.store, "nope", "x", user)
        self.assertEqual((await data.get_user(self.store, user.id)).points, 0)

    async def test_missing_author_keeps_comment_without_point(self):
        author = await self._user("Ana", "ana@example.com")
        commenter = await self._user("Bo", "bo@example.com")
        link = await self._link(author)
        await data.delete_user(self.store, author.id)

        with self.assertLogs("linklocker.data", level="WARNING"):
            with self.assertRaises(NotFound) as ctx:
                await data.add_comment_to_community_link(
                    self.store, link.id, "orphan", commenter
                )

        self.assertEqual(ctx.exception.collection, USERS_COLLECTION)
        stored = self.store.collections[COMMUNITY_LINKS_COLLECTION][link.id]
        self.assertEqual(len(stored["comments"]), 1)

    async def test_delete_community_link_comment(self):
        author = await self._user()
        link = await self._link(author)
        updated = await data.add_comment_to_community_link(
            self.store, link.id, "bye", author
        )

        await data.delete_community_link_comment(
            self.store, link.id, updated.comments[0].id
        )

        reloaded = await data.get_community_link(self.store, link.id)
        self.assertEqual(reloaded.comments, [])

    async def test_delete_community_link_comment_keeps_extra_keys(self):
        author = await self._user()
        link = await self._link(author)
        kept = {**_comment("c1", "2024-03-01T10:00:00.000Z"), "edited": True}
        await self.store.update_document(
            COMMUNITY_LINKS_COLLECTION,
            link.id,
            {"comments": [kept, _comment("c2", "2024-03-02T10:00:00.000Z")]},
        )

        await data.delete_community_link_comment(self.store, link.id, "c2")

        stored = self.store.collections[COMMUNITY_LINKS_COLLECTION][link.id]
        self.assertEqual(stored["comments"], [kept])

    async def test_delete_community_link_comment_missing_link_raises_not_found(self):
        with self.assertRaises(NotFound):
            await data.delete_community_link_comment(self.store, "missing", "c1")

    async def test_delete_community_link(self):
        author = await self._user()
        link = await self._link(author)
        await data.delete_community_link(self.store, link.id)
        self.assertIsNone(await data.get_community_link(self.store, link.id))


if __name__ == "__main__":
    unittest.main()
