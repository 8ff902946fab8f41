from datetime import datetime, timedelta, timezone

import pytest

from app.errors import BadRequest, Forbidden, NotFound
from app.models import post_key


@pytest.fixture
async def author(repo):
    return await repo.create_user("u-author", "author@example.com", "Ada", "UK")


@pytest.fixture
async def reader(repo):
    return await repo.create_user("u-reader", "reader@example.com", "Linus", "FI")


async def _publish(repo, author_id, title="Virtual DOM", **kwargs):
    fields = {"description": "How diffing works", "content": "Long form body"}
    fields.update(kwargs)
    return await repo.create_post(author_id, title=title, **fields)


async def _backdate(repo, post, hours, **changes):
    ts = (datetime.now(timezone.utc) - timedelta(hours=hours)).isoformat()
    updated = post.model_copy(update={"timestamp": ts, **changes})
    await repo.store.set(post_key(post.id), updated.to_json())
    return updated


class TestCreatePost:
    async def test_snapshots_author_and_zeroes_counters(self, repo, author):
        post = await _publish(repo, author.id, tags=["react"])

        stored = await repo.get_post(post.id)
        assert stored == post
        assert stored.author.name == "Ada"
        assert stored.category == "Uncategorized"
        assert stored.tags == ["react"]
        assert (stored.upvotes, stored.comments) == (0, 0)

    @pytest.mark.parametrize("missing", ["title", "description", "content"])
    async def test_requires_text_fields(self, repo, author, missing):
        fields = {"title": "t", "description": "d", "content": "c", missing: ""}
        with pytest.raises(BadRequest):
            await repo.create_post(author.id, **fields)
        assert await repo.list_all_posts() == []

    async def test_requires_profile(self, repo):
        with pytest.raises(NotFound):
            await _publish(repo, "u-ghost")

    async def test_snapshot_not_refreshed_by_profile_edit(self, repo, author):
        post = await _publish(repo, author.id)
        await repo.update_profile(author.id, name="Ada Lovelace")

        assert (await repo.get_post(post.id)).author.name == "Ada"


class TestListPosts:
    async def test_recent_is_newest_first(self, repo, author):
        p1 = await _backdate(repo, await _publish(repo, author.id, title="one"), hours=3)
        p2 = await _backdate(repo, await _publish(repo, author.id, title="two"), hours=2)
        p3 = await _backdate(repo, await _publish(repo, author.id, title="three"), hours=1)

        posts = await repo.list_posts(sort="recent")
        assert [p.id for p in posts] == [p3.id, p2.id, p1.id]

        # unknown keys fall back to recency
        assert [p.id for p in await repo.list_posts(sort="bogus")] == [p3.id, p2.id, p1.id]

    async def test_upvotes_and_comments_descending(self, repo, author):
        a = await _backdate(repo, await _publish(repo, author.id), 1, upvotes=2, comments=9)
        b = await _backdate(repo, await _publish(repo, author.id), 2, upvotes=7, comments=0)
        c = await _backdate(repo, await _publish(repo, author.id), 3, upvotes=4, comments=3)

        assert [p.id for p in await repo.list_posts(sort="upvotes")] == [b.id, c.id, a.id]
        assert [p.id for p in await repo.list_posts(sort="comments")] == [a.id, c.id, b.id]

    async def test_category_filter(self, repo, author):
        react = await _publish(repo, author.id, category="React")
        await _publish(repo, author.id, category="Databases")

        assert [p.id for p in await repo.list_posts(category="React")] == [react.id]
        assert len(await repo.list_posts(category="All Topics")) == 2


class TestUpvote:
    async def test_toggle_twice_restores_count(self, repo, author, reader):
        post = await _publish(repo, author.id)

        assert await repo.toggle_upvote(reader.id, post.id) == (1, True)
        assert await repo.is_upvoted(reader.id, post.id)
        assert await repo.toggle_upvote(reader.id, post.id) == (0, False)
        assert not await repo.is_upvoted(reader.id, post.id)
        assert (await repo.get_post(post.id)).upvotes == 0

    async def test_counter_floored_at_zero(self, repo, author, reader):
        post = await _publish(repo, author.id)
        await repo.toggle_upvote(reader.id, post.id)
        # counter drifted below the number of toggle keys
        await _backdate(repo, await repo.get_post(post.id), 0, upvotes=0)

        assert await repo.toggle_upvote(reader.id, post.id) == (0, False)

    async def test_missing_post(self, repo, reader):
        with pytest.raises(NotFound):
            await repo.toggle_upvote(reader.id, "nope")
        assert not await repo.is_upvoted(reader.id, "nope")


class TestBookmarks:
    async def test_toggle_and_list(self, repo, author, reader):
        post = await _publish(repo, author.id)

        assert await repo.toggle_bookmark(reader.id, post.id) is True
        assert [p.id for p in await repo.list_bookmarked_posts(reader.id)] == [post.id]
        assert await repo.toggle_bookmark(reader.id, post.id) is False
        assert await repo.list_bookmarked_posts(reader.id) == []

    async def test_dangling_bookmarks_are_skipped(self, repo, reader):
        await repo.toggle_bookmark(reader.id, "deleted-post")
        assert await repo.list_bookmarked_posts(reader.id) == []


class TestDeletePost:
    async def test_only_author_may_delete(self, repo, author, reader):
        post = await _publish(repo, author.id)

        with pytest.raises(Forbidden):
            await repo.delete_post(reader.id, post.id)
        assert await repo.get_post(post.id) is not None

    async def test_missing_post(self, repo, author):
        with pytest.raises(NotFound):
            await repo.delete_post(author.id, "nope")

    async def test_cascades_to_toggles_and_comments(self, repo, author, reader):
        post = await _publish(repo, author.id)
        other = await _publish(repo, author.id, title="Other")
        await repo.toggle_upvote(reader.id, post.id)
        await repo.toggle_bookmark(reader.id, post.id)
        await repo.toggle_upvote(reader.id, other.id)
        await repo.toggle_bookmark(reader.id, other.id)
        await repo.create_comment(reader.id, post.id, "nice")

        await repo.delete_post(author.id, post.id)

        assert await repo.get_post(post.id) is None
        assert await repo.list_comments(post.id) == []
        assert not await repo.is_upvoted(reader.id, post.id)
        assert not await repo.is_bookmarked(reader.id, post.id)
        # unrelated toggles survive
        assert await repo.is_upvoted(reader.id, other.id)
        assert await repo.is_bookmarked(reader.id, other.id)


class TestComments:
    async def test_create_bumps_counter(self, repo, author, reader):
        post = await _publish(repo, author.id)

        comment = await repo.create_comment(reader.id, post.id, "Great write-up")

        assert comment.author.name == "Linus"
        assert comment.post_id == post.id
        assert (await repo.get_post(post.id)).comments == 1

    async def test_empty_content_rejected(self, repo, author, reader):
        post = await _publish(repo, author.id)
        with pytest.raises(BadRequest):
            await repo.create_comment(reader.id, post.id, "")

    async def test_missing_post(self, repo, reader):
        with pytest.raises(NotFound):
            await repo.create_comment(reader.id, "nope", "hello")

    async def test_listed_newest_first(self, repo, author, reader):
        post = await _publish(repo, author.id)
        older = await repo.create_comment(reader.id, post.id, "first")
        newer = await repo.create_comment(reader.id, post.id, "second")
        backdated = older.model_copy(
            update={"timestamp": (datetime.now(timezone.utc) - timedelta(hours=1)).isoformat()}
        )
        await repo.store.set(f"comment:{post.id}:{older.id}", backdated.to_json())

        assert [c.id for c in await repo.list_comments(post.id)] == [newer.id, older.id]


class TestDrafts:
    async def test_defaults_and_scoping(self, repo, author, reader):
        draft = await repo.save_draft(author.id, title="WIP")

        assert (draft.title, draft.content, draft.category, draft.tags) == ("WIP", "", "", [])
        assert [d.id for d in await repo.list_drafts(author.id)] == [draft.id]
        assert await repo.list_drafts(reader.id) == []


class TestProfile:
    async def test_merge_patch(self, repo, author):
        updated = await repo.update_profile(author.id, name="", country="IE", bio="Hi")

        assert updated.name == "Ada"
        assert updated.country == "IE"
        assert updated.bio == "Hi"
        assert updated.website == ""
        assert updated.updated_at is not None
        assert await repo.get_user(author.id) == updated

    async def test_keeps_existing_bio(self, repo, author):
        await repo.update_profile(author.id, bio="Compilers")
        assert (await repo.update_profile(author.id, website="https://ada.dev")).bio == "Compilers"

    async def test_missing_profile(self, repo):
        with pytest.raises(NotFound):
            await repo.update_profile("u-ghost", name="x")


async def test_follow_toggle_allows_self_follow(repo, author):
    assert await repo.toggle_follow(author.id, author.id) is True
    assert await repo.toggle_follow(author.id, author.id) is False


class TestSearch:
    async def test_case_insensitive_substring(self, repo, author):
        post = await _publish(repo, author.id, title="Virtual DOM")

        assert [p.id for p in await repo.search_posts("virtual")] == [post.id]
        assert await repo.search_posts("nonexistent") == []

    async def test_matches_tags_and_category(self, repo, author):
        post = await _publish(repo, author.id, title="t", category="Frontend", tags=["Reconciliation"])

        assert [p.id for p in await repo.search_posts("frontend")] == [post.id]
        assert [p.id for p in await repo.search_posts("reconcil")] == [post.id]

    async def test_body_is_not_searched(self, repo, author):
        await _publish(repo, author.id, content="hidden needle")
        assert await repo.search_posts("needle") == []

    async def test_empty_query(self, repo, author):
        await _publish(repo, author.id)
        assert await repo.search_posts("") == []
