"""
Post endpoints:
  POST   /posts                 — publish a post
  GET    /posts                 — list (sort=recent|upvotes|comments, category=…)
  DELETE /posts/{id}            — author-only delete, cascades to toggles + comments
  POST   /posts/{id}/upvote     — upvote toggle
  POST   /posts/{id}/bookmark   — bookmark toggle
  GET    /bookmarks             — the caller's bookmarked posts
  POST   /posts/{id}/comments   — comment on a post
  GET    /posts/{id}/comments   — comments, newest first
  GET    /search?q=…            — substring search over title/description/category/tags
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from opentelemetry import trace

from app.identity import optional_user_id, require_user_id
from app.repository import ContentRepository, get_repository
from app.schemas import (
    BookmarkResponse,
    CommentCreate,
    CommentListResponse,
    CommentResponse,
    PostCreate,
    PostListResponse,
    PostResponse,
    SuccessResponse,
    UpvoteResponse,
)
from app.telemetry import COMMENTS_CREATED_TOTAL, POSTS_CREATED_TOTAL, record_toggle
from app.views import comment_view, post_views

logger = logging.getLogger(__name__)
router = APIRouter()
tracer = trace.get_tracer(__name__)


@router.post("/posts", response_model=PostResponse)
async def create_post(
    body: PostCreate,
    user_id: str = Depends(require_user_id),
    repo: ContentRepository = Depends(get_repository),
):
    """
    Publish a post. The author's current name, country and avatar are copied
    into the post and are not refreshed by later profile edits.
    """
    with tracer.start_as_current_span("create_post") as span:
        post = await repo.create_post(
            user_id,
            title=body.title,
            description=body.description,
            content=body.content,
            category=body.category,
            tags=body.tags,
        )
        span.set_attribute("post.id", post.id)
        span.set_attribute("post.category", post.category)

        POSTS_CREATED_TOTAL.inc()
        logger.info("Post created: %s by user %s", post.id, user_id)
        return PostResponse(post=post)


@router.get("/posts", response_model=PostListResponse)
async def list_posts(
    sort: str = Query("recent", description="recent | upvotes | comments"),
    category: Optional[str] = Query(None),
    user_id: Optional[str] = Depends(optional_user_id),
    repo: ContentRepository = Depends(get_repository),
):
    with tracer.start_as_current_span("list_posts") as span:
        span.set_attribute("posts.sort", sort)
        posts = await repo.list_posts(sort=sort, category=category)
        span.set_attribute("posts.count", len(posts))
        return PostListResponse(posts=await post_views(repo, posts, user_id))


@router.delete("/posts/{post_id}", response_model=SuccessResponse)
async def delete_post(
    post_id: str,
    user_id: str = Depends(require_user_id),
    repo: ContentRepository = Depends(get_repository),
):
    with tracer.start_as_current_span("delete_post") as span:
        span.set_attribute("post.id", post_id)
        await repo.delete_post(user_id, post_id)
        return SuccessResponse(success=True)


@router.post("/posts/{post_id}/upvote", response_model=UpvoteResponse)
async def upvote_post(
    post_id: str,
    user_id: str = Depends(require_user_id),
    repo: ContentRepository = Depends(get_repository),
):
    with tracer.start_as_current_span("toggle_upvote"):
        upvotes, is_upvoted = await repo.toggle_upvote(user_id, post_id)
        record_toggle("upvote", is_upvoted)
        return UpvoteResponse(upvotes=upvotes, is_upvoted=is_upvoted)


@router.post("/posts/{post_id}/bookmark", response_model=BookmarkResponse)
async def bookmark_post(
    post_id: str,
    user_id: str = Depends(require_user_id),
    repo: ContentRepository = Depends(get_repository),
):
    with tracer.start_as_current_span("toggle_bookmark"):
        is_bookmarked = await repo.toggle_bookmark(user_id, post_id)
        record_toggle("bookmark", is_bookmarked)
        return BookmarkResponse(is_bookmarked=is_bookmarked)


@router.get("/bookmarks", response_model=PostListResponse)
async def list_bookmarks(
    user_id: str = Depends(require_user_id),
    repo: ContentRepository = Depends(get_repository),
):
    posts = await repo.list_bookmarked_posts(user_id)
    return PostListResponse(posts=await post_views(repo, posts, user_id))


@router.post("/posts/{post_id}/comments", response_model=CommentResponse)
async def create_comment(
    post_id: str,
    body: CommentCreate,
    user_id: str = Depends(require_user_id),
    repo: ContentRepository = Depends(get_repository),
):
    with tracer.start_as_current_span("create_comment") as span:
        span.set_attribute("post.id", post_id)
        comment = await repo.create_comment(user_id, post_id, body.content)
        COMMENTS_CREATED_TOTAL.inc()
        return CommentResponse(comment=comment_view(comment))


@router.get("/posts/{post_id}/comments", response_model=CommentListResponse)
async def list_comments(
    post_id: str,
    repo: ContentRepository = Depends(get_repository),
):
    comments = await repo.list_comments(post_id)
    return CommentListResponse(comments=[comment_view(c) for c in comments])


@router.get("/search", response_model=PostListResponse)
async def search_posts(
    q: Optional[str] = Query(None, description="Case-insensitive substring"),
    repo: ContentRepository = Depends(get_repository),
):
    with tracer.start_as_current_span("search_posts") as span:
        posts = await repo.search_posts(q)
        span.set_attribute("search.results", len(posts))
        return PostListResponse(posts=await post_views(repo, posts))
