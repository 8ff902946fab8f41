"""
View assembly: shapes stored records into what the web client renders.

  • relative timestamps ("3 hours ago") in place of ISO strings
  • per-caller isUpvoted / isBookmarked flags, probed one key at a time
  • the contributor leaderboard aggregated from users × posts
"""
import asyncio
from datetime import datetime, timezone
from typing import Optional

from app.models import Comment, Post, User
from app.repository import ContentRepository
from app.schemas import Contributor, PostView


def _plural(n: int, unit: str) -> str:
    return f"1 {unit} ago" if n == 1 else f"{n} {unit}s ago"


def relative_time(timestamp: str, now: Optional[datetime] = None) -> str:
    """Render an ISO-8601 timestamp as minutes, hours or days ago.

    Anything under two minutes (including timestamps in the future) reads
    "1 minute ago".
    """
    now = now or datetime.now(timezone.utc)
    then = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    if then.tzinfo is None:
        then = then.replace(tzinfo=timezone.utc)

    elapsed = (now - then).total_seconds()
    minutes = int(elapsed // 60)
    hours = int(elapsed // 3600)
    days = int(elapsed // 86400)

    if minutes < 60:
        return "1 minute ago" if minutes <= 1 else f"{minutes} minutes ago"
    if hours < 24:
        return _plural(hours, "hour")
    return _plural(days, "day")


def post_view(
    post: Post,
    now: Optional[datetime] = None,
    is_upvoted: bool = False,
    is_bookmarked: bool = False,
) -> PostView:
    return PostView(
        **post.model_dump(exclude={"timestamp"}),
        timestamp=relative_time(post.timestamp, now),
        is_upvoted=is_upvoted,
        is_bookmarked=is_bookmarked,
    )


def comment_view(comment: Comment, now: Optional[datetime] = None) -> Comment:
    return comment.model_copy(update={"timestamp": relative_time(comment.timestamp, now)})


async def post_views(
    repo: ContentRepository,
    posts: list[Post],
    user_id: Optional[str] = None,
) -> list[PostView]:
    """Build views for `posts`, attaching the caller's flags when known."""
    now = datetime.now(timezone.utc)
    if user_id is None:
        return [post_view(p, now) for p in posts]

    async def _enrich(post: Post) -> PostView:
        is_upvoted, is_bookmarked = await asyncio.gather(
            repo.is_upvoted(user_id, post.id),
            repo.is_bookmarked(user_id, post.id),
        )
        return post_view(post, now, is_upvoted, is_bookmarked)

    return list(await asyncio.gather(*(_enrich(p) for p in posts)))


def build_contributors(users: list[User], posts: list[Post]) -> list[Contributor]:
    """Post count and summed upvotes per author; authors without posts are dropped."""
    board: dict[str, Contributor] = {
        u.id: Contributor(id=u.id, name=u.name, country=u.country, avatar=u.avatar)
        for u in users
    }
    for post in posts:
        entry = board.get(post.author_id)
        if entry is not None:
            entry.posts += 1
            entry.total_upvotes += post.upvotes

    ranked = [c for c in board.values() if c.posts > 0]
    ranked.sort(key=lambda c: c.posts, reverse=True)
    return ranked
