import logging
from typing import Annotated

from fastapi import Cookie, Depends, Header, Request, Response

from auth_service.config import ENVIRONMENT
from auth_service.models import User
from auth_service.services.accounts import AccountService

logger = logging.getLogger(__name__)

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"


# ── Services ───────────────────────────────────────────────────────────────


def get_account_service(request: Request) -> AccountService:
    """The AccountService built by the app lifespan."""
    return request.app.state.accounts


Accounts = Annotated[AccountService, Depends(get_account_service)]


# ── Cookies ────────────────────────────────────────────────────────────────


def set_auth_cookie(response: Response, name: str, token: str, max_age: int) -> None:
    response.set_cookie(
        key=name,
        value=token,
        httponly=True,
        samesite="strict",
        secure=ENVIRONMENT == "production",
        max_age=max_age,
    )


def clear_auth_cookies(response: Response) -> None:
    response.delete_cookie(ACCESS_COOKIE)
    response.delete_cookie(REFRESH_COOKIE)


# ── Current user ───────────────────────────────────────────────────────────


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


async def get_current_user(
    accounts: Accounts,
    access_token: Annotated[str | None, Cookie()] = None,
    authorization: Annotated[str | None, Header()] = None,
) -> User:
    """Resolve the caller from the access-token cookie or a Bearer header."""
    return await accounts.authenticate(access_token or _bearer_token(authorization))


CurrentUser = Annotated[User, Depends(get_current_user)]
