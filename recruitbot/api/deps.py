# recruitbot/api/deps.py
import logging
from typing import Optional

from fastapi import Depends, Header

from recruitbot.core.container import Container
from recruitbot.core.exceptions import AuthError, ForbiddenError
from recruitbot.core.schemas import ApiUser

logger = logging.getLogger(__name__)

ROLE_LEVELS = {"viewer": 1, "recruiter": 2, "admin": 3}

_container: Optional[Container] = None


def get_container() -> Container:
    global _container
    if _container is None:
        _container = Container.from_database()
        logger.info("🧩 Service container created")
    return _container


async def close_container():
    global _container
    if _container is not None:
        await _container.close()
        _container = None


async def get_current_user(
    authorization: Optional[str] = Header(None),
    container: Container = Depends(get_container),
) -> ApiUser:
    """Resolves `Authorization: Bearer <token>` to an active API user."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise AuthError("Missing bearer token")

    token = authorization[7:].strip()
    user = await container.users.get_by_token(token) if token else None
    if user is None or not user.is_active:
        logger.warning("⚠️ Rejected request with an invalid API token")
        raise AuthError("Invalid or expired token")
    return user


def require_role(role: str):
    required = ROLE_LEVELS[role]

    async def dependency(user: ApiUser = Depends(get_current_user)) -> ApiUser:
        if ROLE_LEVELS.get(user.role, 0) < required:
            logger.warning(f"⛔ {user.email} ({user.role}) tried an action that requires {role}")
            raise ForbiddenError(f"Requires role {role}")
        return user

    return dependency
