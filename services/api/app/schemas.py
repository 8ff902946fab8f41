"""
Pydantic request / response schemas for the API layer.
Kept separate from the stored records to avoid coupling transport to storage.

Request fields are optional at the schema level: the handlers decide what a
missing or empty value means (the web client sends "" for untouched inputs).
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.models import Comment, Draft, Post, User


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ──────────────────────────── Users / auth ────────────────────────────────

class SignupRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None
    country: Optional[str] = None


class SigninRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    country: Optional[str] = None
    bio: Optional[str] = None
    website: Optional[str] = None


class UserResponse(CamelModel):
    user: Optional[User]


class SigninResponse(CamelModel):
    access_token: str
    user: Optional[User]


class FollowResponse(CamelModel):
    is_following: bool


class Contributor(CamelModel):
    id: str
    name: str
    country: str
    avatar: Optional[str] = None
    posts: int = 0
    total_upvotes: int = 0


class ContributorsResponse(CamelModel):
    contributors: list[Contributor]


# ──────────────────────────── Posts ───────────────────────────────────────

class PostCreate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    content: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[list[str]] = None


class PostView(Post):
    """A post as served to a client: relative timestamp + caller flags."""
    is_upvoted: bool = False
    is_bookmarked: bool = False


class PostResponse(CamelModel):
    post: Post


class PostListResponse(CamelModel):
    posts: list[PostView]


class UpvoteResponse(CamelModel):
    upvotes: int
    is_upvoted: bool


class BookmarkResponse(CamelModel):
    is_bookmarked: bool


class SuccessResponse(CamelModel):
    success: bool


# ──────────────────────────── Comments ────────────────────────────────────

class CommentCreate(BaseModel):
    content: Optional[str] = None


class CommentResponse(CamelModel):
    comment: Comment


class CommentListResponse(CamelModel):
    comments: list[Comment]


# ──────────────────────────── Drafts ──────────────────────────────────────

class DraftCreate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    content: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[list[str]] = None


class DraftResponse(CamelModel):
    draft: Draft


class DraftListResponse(CamelModel):
    drafts: list[Draft]
