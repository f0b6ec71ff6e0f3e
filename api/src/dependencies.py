"""
FastAPI dependency injection for repositories and request context.

Provides injectable dependencies for:
- Repository instances bound to the shared MongoDB database
- Pagination parameters
- The settings the application was built with

All dependencies use FastAPI's dependency injection system and are designed
to be composable and overridable in tests.
"""

from typing import Optional
from fastapi import Depends, Request
from pymongo.asynchronous.database import AsyncDatabase

from api.src.config import Settings
from api.src.database import get_database
from api.src.repositories.user_repo import UserRepository


# ============================================================================
# REPOSITORIES
# ============================================================================


def get_user_repository(
    database: AsyncDatabase = Depends(get_database)
) -> UserRepository:
    """
    Get user repository instance.

    Example:
        @router.get("/{user_id}")
        async def get_user(
            user_id: str,
            user_repo: UserRepository = Depends(get_user_repository)
        ):
            return await user_repo.get_user_by_id(user_id)
    """
    return UserRepository(database)


# ============================================================================
# REQUEST CONTEXT
# ============================================================================


def get_settings_dependency(request: Request) -> Settings:
    """Get the settings the application was built with."""
    return request.app.state.settings


# ============================================================================
# PAGINATION
# ============================================================================


class PaginationParams:
    """Pagination parameters for list endpoints."""

    def __init__(
        self,
        limit: int,
        offset: int,
        max_limit: int
    ):
        """
        Initialize pagination parameters.

        Out-of-range values are clamped rather than rejected.

        Args:
            limit: Maximum number of items (1..max_limit)
            offset: Number of items to skip
            max_limit: Upper bound for limit
        """
        if limit < 1:
            limit = 1
        elif limit > max_limit:
            limit = max_limit

        if offset < 0:
            offset = 0

        self.limit = limit
        self.offset = offset


async def get_pagination_params(
    limit: Optional[int] = None,
    offset: int = 0,
    settings: Settings = Depends(get_settings_dependency)
) -> PaginationParams:
    """
    Get pagination parameters from query string.

    Args:
        limit: Maximum number of items (default from settings)
        offset: Number of items to skip (default: 0)

    Returns:
        Pagination parameters
    """
    if limit is None:
        limit = settings.pagination_default_limit
    return PaginationParams(
        limit=limit,
        offset=offset,
        max_limit=settings.pagination_max_limit
    )
