"""
Content repository — every read and write against the key-value store.

Each operation is a handful of single-key calls. Nothing spans keys
atomically, so counters on a post (upvotes, comments) are a read-modify-write
of the whole post record and can drift under concurrent requests against the
same post. Toggles decide their new state from the result of DELETE, so two
racing toggles by one user never both see the key as present.
"""
import logging
import uuid
from datetime import datetime
from typing import Optional

from fastapi import Depends

from app.clients.redis_client import KeyValueStore, get_store
from app.errors import BadRequest, Forbidden, NotFound
from app.models import (
    Bookmark,
    Comment,
    Draft,
    Follow,
    Post,
    User,
    bookmark_key,
    comment_key,
    draft_key,
    follow_key,
    post_key,
    upvote_key,
    user_key,
    utcnow_iso,
)

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "All Topics"


def _parse_ts(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def sort_posts(posts: list[Post], sort: Optional[str]) -> list[Post]:
    """Order posts for a listing. Unknown sort keys fall back to 'recent'.

    Python's sort is stable, so equal keys keep the store's scan order.
    """
    if sort == "upvotes":
        return sorted(posts, key=lambda p: p.upvotes, reverse=True)
    if sort == "comments":
        return sorted(posts, key=lambda p: p.comments, reverse=True)
    return sorted(posts, key=lambda p: _parse_ts(p.timestamp), reverse=True)


def matches_query(post: Post, query: str) -> bool:
    haystack = f"{post.title} {post.description} {post.category} {' '.join(post.tags)}"
    return query.lower() in haystack.lower()


class ContentRepository:
    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    # ── Users ─────────────────────────────────────────────────────────────

    async def create_user(self, user_id: str, email: str, name: str, country: str) -> User:
        user = User(
            id=user_id,
            email=email,
            name=name,
            country=country,
            avatar=None,
            created_at=utcnow_iso(),
        )
        await self.store.set(user_key(user_id), user.to_json())
        logger.info("Created user profile %s", user_id)
        return user

    async def get_user(self, user_id: str) -> Optional[User]:
        raw = await self.store.get(user_key(user_id))
        return User.model_validate(raw) if raw else None

    async def require_user(self, user_id: str) -> User:
        user = await self.get_user(user_id)
        if user is None:
            raise NotFound("User profile not found")
        return user

    async def list_users(self) -> list[User]:
        return [User.model_validate(raw) for raw in await self.store.get_by_prefix("user:")]

    async def update_profile(
        self,
        user_id: str,
        name: Optional[str] = None,
        country: Optional[str] = None,
        bio: Optional[str] = None,
        website: Optional[str] = None,
    ) -> User:
        """Merge-patch the profile. Empty values never clear name or country.

        Author snapshots already embedded in posts and comments are left as-is.
        """
        user = await self.require_user(user_id)
        updated = user.model_copy(
            update={
                "name": name or user.name,
                "country": country or user.country,
                "bio": bio or user.bio or "",
                "website": website or user.website or "",
                "updated_at": utcnow_iso(),
            }
        )
        await self.store.set(user_key(user_id), updated.to_json())
        return updated

    async def toggle_follow(self, follower_id: str, followee_id: str) -> bool:
        """Returns the new following state."""
        key = follow_key(follower_id, followee_id)
        if await self.store.delete(key):
            return False
        await self.store.set(key, Follow(timestamp=utcnow_iso()).to_json())
        return True

    # ── Posts ─────────────────────────────────────────────────────────────

    async def create_post(
        self,
        author_id: str,
        title: Optional[str],
        description: Optional[str],
        content: Optional[str],
        category: Optional[str] = None,
        tags: Optional[list[str]] = None,
    ) -> Post:
        if not title or not description or not content:
            raise BadRequest("Missing required fields")

        author = await self.require_user(author_id)
        now = utcnow_iso()
        post = Post(
            id=str(uuid.uuid4()),
            title=title,
            description=description,
            content=content,
            category=category or "Uncategorized",
            tags=tags or [],
            author_id=author_id,
            author=author.snapshot(),
            upvotes=0,
            comments=0,
            timestamp=now,
            created_at=now,
        )
        await self.store.set(post_key(post.id), post.to_json())
        return post

    async def get_post(self, post_id: str) -> Optional[Post]:
        raw = await self.store.get(post_key(post_id))
        return Post.model_validate(raw) if raw else None

    async def require_post(self, post_id: str) -> Post:
        post = await self.get_post(post_id)
        if post is None:
            raise NotFound("Post not found")
        return post

    async def list_all_posts(self) -> list[Post]:
        return [Post.model_validate(raw) for raw in await self.store.get_by_prefix("post:")]

    async def list_posts(
        self, sort: Optional[str] = None, category: Optional[str] = None
    ) -> list[Post]:
        posts = await self.list_all_posts()
        if category and category != ALL_CATEGORIES:
            posts = [p for p in posts if p.category == category]
        return sort_posts(posts, sort)

    async def search_posts(self, query: Optional[str]) -> list[Post]:
        if not query:
            return []
        return [p for p in await self.list_all_posts() if matches_query(p, query)]

    async def delete_post(self, requester_id: str, post_id: str) -> None:
        post = await self.require_post(post_id)
        if post.author_id != requester_id:
            raise Forbidden("You can only delete your own posts")

        await self.store.delete(post_key(post_id))

        # Toggle keys are scoped by user first, so finding one post's
        # upvotes and bookmarks means walking every toggle in the store.
        suffix = f":{post_id}"
        removed = 0
        for prefix in ("upvote:", "bookmark:"):
            for key in await self.store.keys_by_prefix(prefix):
                if key.endswith(suffix):
                    await self.store.delete(key)
                    removed += 1

        for key in await self.store.keys_by_prefix(f"comment:{post_id}:"):
            await self.store.delete(key)
            removed += 1

        logger.info("Deleted post %s and %d dependent records", post_id, removed)

    # ── Upvotes / bookmarks ───────────────────────────────────────────────

    async def toggle_upvote(self, user_id: str, post_id: str) -> tuple[int, bool]:
        """Flip the caller's upvote. Returns (upvotes, is_upvoted)."""
        post = await self.require_post(post_id)
        key = upvote_key(user_id, post_id)
        if await self.store.delete(key):
            post.upvotes = max(0, post.upvotes - 1)
            is_upvoted = False
        else:
            await self.store.set(key, True)
            post.upvotes += 1
            is_upvoted = True

        await self.store.set(post_key(post_id), post.to_json())
        return post.upvotes, is_upvoted

    async def toggle_bookmark(self, user_id: str, post_id: str) -> bool:
        key = bookmark_key(user_id, post_id)
        if await self.store.delete(key):
            return False
        await self.store.set(
            key, Bookmark(post_id=post_id, timestamp=utcnow_iso()).to_json()
        )
        return True

    async def is_upvoted(self, user_id: str, post_id: str) -> bool:
        return bool(await self.store.get(upvote_key(user_id, post_id)))

    async def is_bookmarked(self, user_id: str, post_id: str) -> bool:
        return bool(await self.store.get(bookmark_key(user_id, post_id)))

    async def list_bookmarked_posts(self, user_id: str) -> list[Post]:
        posts = []
        for raw in await self.store.get_by_prefix(f"bookmark:{user_id}:"):
            post = await self.get_post(Bookmark.model_validate(raw).post_id)
            # The post may have been deleted since it was bookmarked
            if post is not None:
                posts.append(post)
        return posts

    # ── Comments ──────────────────────────────────────────────────────────

    async def create_comment(
        self, author_id: str, post_id: str, content: Optional[str]
    ) -> Comment:
        if not content:
            raise BadRequest("Comment content is required")

        post = await self.require_post(post_id)
        author = await self.require_user(author_id)
        now = utcnow_iso()
        comment = Comment(
            id=str(uuid.uuid4()),
            post_id=post_id,
            content=content,
            author_id=author_id,
            author=author.snapshot(),
            timestamp=now,
            created_at=now,
        )
        await self.store.set(comment_key(post_id, comment.id), comment.to_json())

        post.comments += 1
        await self.store.set(post_key(post_id), post.to_json())
        return comment

    async def list_comments(self, post_id: str) -> list[Comment]:
        comments = [
            Comment.model_validate(raw)
            for raw in await self.store.get_by_prefix(f"comment:{post_id}:")
        ]
        return sorted(comments, key=lambda c: _parse_ts(c.timestamp), reverse=True)

    # ── Drafts ────────────────────────────────────────────────────────────

    async def save_draft(
        self,
        author_id: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        content: Optional[str] = None,
        category: Optional[str] = None,
        tags: Optional[list[str]] = None,
    ) -> Draft:
        now = utcnow_iso()
        draft = Draft(
            id=str(uuid.uuid4()),
            title=title or "",
            description=description or "",
            content=content or "",
            category=category or "",
            tags=tags or [],
            author_id=author_id,
            created_at=now,
            updated_at=now,
        )
        await self.store.set(draft_key(author_id, draft.id), draft.to_json())
        return draft

    async def list_drafts(self, author_id: str) -> list[Draft]:
        return [
            Draft.model_validate(raw)
            for raw in await self.store.get_by_prefix(f"draft:{author_id}:")
        ]


def get_repository(store: KeyValueStore = Depends(get_store)) -> ContentRepository:
    return ContentRepository(store)
