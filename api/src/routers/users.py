"""
Users router.

Default route module mounted under the service's route prefix
(``/api/users``). Provides REST API endpoints for:
- Listing users with pagination
- Creating, reading, updating and deleting users

The router declares no prefix of its own; the mount point is configuration.
"""

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pymongo.asynchronous.database import AsyncDatabase

from api.src.models.user import (
    CreateUserRequest, UpdateUserRequest, UserResponse,
    UserListResponse, ErrorResponse
)
from api.src.repositories.user_repo import UserRepository
from api.src.dependencies import (
    get_user_repository,
    get_pagination_params,
    PaginationParams,
)

router = APIRouter(
    tags=["Users"],
    responses={
        422: {"description": "Validation Error"}
    }
)


async def startup(database: AsyncDatabase) -> None:
    """Prepare the users collection once the database is connected."""
    await UserRepository(database).ensure_indexes()


def _not_found(user_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"User '{user_id}' not found"
    )


# ============================================================================
# USER ENDPOINTS
# ============================================================================


@router.get(
    "",
    response_model=UserListResponse,
    summary="List Users",
)
async def list_users(
    pagination: PaginationParams = Depends(get_pagination_params),
    user_repo: UserRepository = Depends(get_user_repository)
) -> UserListResponse:
    """
    List users, newest first.

    Query parameters ``limit`` and ``offset`` page through the collection.
    """
    users = await user_repo.list_users(limit=pagination.limit, offset=pagination.offset)
    total = await user_repo.count_users()

    return UserListResponse(
        items=users,
        total=total,
        limit=pagination.limit,
        offset=pagination.offset
    )


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create User",
    responses={
        409: {
            "description": "Email already exists",
            "model": ErrorResponse
        }
    }
)
async def create_user(
    create_request: CreateUserRequest,
    user_repo: UserRepository = Depends(get_user_repository)
) -> UserResponse:
    """
    Create a new user.

    Raises:
        HTTPException: 409 if the email is already registered
    """
    try:
        return await user_repo.create_user(
            name=create_request.name,
            email=create_request.email,
            age=create_request.age
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e)
        )


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    summary="Get User",
    responses={404: {"model": ErrorResponse}}
)
async def get_user(
    user_id: str,
    user_repo: UserRepository = Depends(get_user_repository)
) -> UserResponse:
    """Get a user by ID. Malformed IDs are reported as not found."""
    user = await user_repo.get_user_by_id(user_id)
    if user is None:
        raise _not_found(user_id)
    return user


@router.put(
    "/{user_id}",
    response_model=UserResponse,
    summary="Update User",
    responses={
        404: {"model": ErrorResponse},
        409: {"description": "Email already exists", "model": ErrorResponse}
    }
)
async def update_user(
    user_id: str,
    update_request: UpdateUserRequest,
    user_repo: UserRepository = Depends(get_user_repository)
) -> UserResponse:
    """
    Update the fields present in the request body.

    Raises:
        HTTPException: 404 if the user does not exist, 409 on a duplicate email
    """
    try:
        user = await user_repo.update_user(user_id, update_request.changes())
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e)
        )

    if user is None:
        raise _not_found(user_id)
    return user


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete User",
    responses={404: {"model": ErrorResponse}}
)
async def delete_user(
    user_id: str,
    user_repo: UserRepository = Depends(get_user_repository)
) -> Response:
    """Delete a user by ID."""
    deleted = await user_repo.delete_user(user_id)
    if not deleted:
        raise _not_found(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
