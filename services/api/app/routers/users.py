"""
Account and people endpoints:
  POST /signup              — register with the auth provider + store a profile
  POST /signin              — password sign-in, returns the provider token
  GET  /user                — the caller's profile
  PUT  /user/profile        — merge-patch the caller's profile
  POST /users/{id}/follow   — follow / unfollow toggle
  GET  /contributors        — leaderboard of authors by post count
"""
import logging

from fastapi import APIRouter, Depends
from opentelemetry import trace

from app.clients.auth_client import AuthClient, AuthProviderError, get_auth_client
from app.errors import BadRequest
from app.identity import require_user_id
from app.repository import ContentRepository, get_repository
from app.schemas import (
    ContributorsResponse,
    FollowResponse,
    ProfileUpdate,
    SigninRequest,
    SigninResponse,
    SignupRequest,
    UserResponse,
)
from app.telemetry import record_toggle
from app.views import build_contributors

logger = logging.getLogger(__name__)
router = APIRouter()
tracer = trace.get_tracer(__name__)


@router.post("/signup", response_model=UserResponse)
async def signup(
    body: SignupRequest,
    auth: AuthClient = Depends(get_auth_client),
    repo: ContentRepository = Depends(get_repository),
):
    """
    Create the account with the auth provider (email pre-confirmed), then
    store the profile under the provider's user id.
    """
    with tracer.start_as_current_span("signup"):
        if not (body.email and body.password and body.name and body.country):
            raise BadRequest("Missing required fields")

        try:
            identity = await auth.create_user(
                body.email,
                body.password,
                {"name": body.name, "country": body.country},
            )
        except AuthProviderError as exc:
            logger.info("Signup rejected for %s: %s", body.email, exc.message)
            raise BadRequest(exc.message) from exc

        user = await repo.create_user(identity.id, body.email, body.name, body.country)
        return UserResponse(user=user)


@router.post("/signin", response_model=SigninResponse)
async def signin(
    body: SigninRequest,
    auth: AuthClient = Depends(get_auth_client),
    repo: ContentRepository = Depends(get_repository),
):
    with tracer.start_as_current_span("signin"):
        if not body.email or not body.password:
            raise BadRequest("Missing email or password")

        try:
            session = await auth.sign_in(body.email, body.password)
        except AuthProviderError as exc:
            logger.info("Signin rejected for %s: %s", body.email, exc.message)
            raise BadRequest(exc.message) from exc

        user = await repo.get_user(session.identity.id)
        return SigninResponse(access_token=session.access_token, user=user)


@router.get("/user", response_model=UserResponse)
async def get_current_user(
    user_id: str = Depends(require_user_id),
    repo: ContentRepository = Depends(get_repository),
):
    return UserResponse(user=await repo.get_user(user_id))


@router.put("/user/profile", response_model=UserResponse)
async def update_profile(
    body: ProfileUpdate,
    user_id: str = Depends(require_user_id),
    repo: ContentRepository = Depends(get_repository),
):
    with tracer.start_as_current_span("update_profile"):
        user = await repo.update_profile(
            user_id,
            name=body.name,
            country=body.country,
            bio=body.bio,
            website=body.website,
        )
        return UserResponse(user=user)


@router.post("/users/{target_id}/follow", response_model=FollowResponse)
async def follow_user(
    target_id: str,
    user_id: str = Depends(require_user_id),
    repo: ContentRepository = Depends(get_repository),
):
    with tracer.start_as_current_span("toggle_follow") as span:
        span.set_attribute("user.id", user_id)
        span.set_attribute("followee.id", target_id)
        is_following = await repo.toggle_follow(user_id, target_id)
        record_toggle("follow", is_following)
        return FollowResponse(is_following=is_following)


@router.get("/contributors", response_model=ContributorsResponse)
async def list_contributors(repo: ContentRepository = Depends(get_repository)):
    with tracer.start_as_current_span("list_contributors"):
        users = await repo.list_users()
        posts = await repo.list_all_posts()
        return ContributorsResponse(contributors=build_contributors(users, posts))
