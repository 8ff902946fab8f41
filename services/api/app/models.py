"""
Stored record shapes.

Records are serialised with camelCase field names (the format the web client
reads) and written as JSON under the keys built by the *_key helpers below.

  user     — profile, id shared with the auth provider
  post     — long-form post; author is a snapshot taken at creation time
  comment  — comment on a post; same snapshot semantics
  draft    — unpublished post body, scoped to its author
  bookmark / follow — toggle records; their presence is the state
"""
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ──────────────────────────── Keys ────────────────────────────────────────

def user_key(user_id: str) -> str:
    return f"user:{user_id}"


def post_key(post_id: str) -> str:
    return f"post:{post_id}"


def comment_key(post_id: str, comment_id: str) -> str:
    return f"comment:{post_id}:{comment_id}"


def draft_key(user_id: str, draft_id: str) -> str:
    return f"draft:{user_id}:{draft_id}"


def upvote_key(user_id: str, post_id: str) -> str:
    return f"upvote:{user_id}:{post_id}"


def bookmark_key(user_id: str, post_id: str) -> str:
    return f"bookmark:{user_id}:{post_id}"


def follow_key(follower_id: str, followee_id: str) -> str:
    return f"follow:{follower_id}:{followee_id}"


# ──────────────────────────── Records ─────────────────────────────────────

class Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True)


class AuthorSnapshot(Record):
    name: str
    country: str
    avatar: Optional[str] = None


class User(Record):
    id: str
    email: str
    name: str
    country: str
    avatar: Optional[str] = None
    bio: Optional[str] = None
    website: Optional[str] = None
    created_at: str
    updated_at: Optional[str] = None

    def snapshot(self) -> AuthorSnapshot:
        return AuthorSnapshot(name=self.name, country=self.country, avatar=self.avatar)


class Post(Record):
    id: str
    title: str
    description: str
    content: str
    category: str = "Uncategorized"
    tags: list[str] = Field(default_factory=list)
    author_id: str
    author: AuthorSnapshot
    upvotes: int = Field(0, ge=0)
    comments: int = Field(0, ge=0)
    # ISO-8601 when stored; views replace it with a relative string
    timestamp: str
    created_at: str


class Comment(Record):
    id: str
    post_id: str
    content: str
    author_id: str
    author: AuthorSnapshot
    timestamp: str
    created_at: str


class Draft(Record):
    id: str
    title: str = ""
    description: str = ""
    content: str = ""
    category: str = ""
    tags: list[str] = Field(default_factory=list)
    author_id: str
    created_at: str
    updated_at: str


class Bookmark(Record):
    post_id: str
    timestamp: str


class Follow(Record):
    timestamp: str
