"""
User router.

This module provides the FastAPI router for the user endpoints:
- Registration and login
- Paginated listing
- Lookup, update and deletion by id
"""
from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter, HTTPException, Query, status

from sso_service.base_microservice import BaseMicroservice
from sso_service.exceptions import SSOServiceError
from sso_service.users.schemas import UserCreate, UserLogin, UserUpdate
from sso_service.users.service import UserService

base_service = BaseMicroservice("users")


def _raise_http(error: SSOServiceError):
    raise HTTPException(status_code=error.status_code, detail=error.message) from error


def create_router(user_service: UserService) -> APIRouter:
    """
    Build the user router around an already wired UserService.

    Args:
        user_service: Service instance every endpoint delegates to

    Returns:
        APIRouter to be mounted under /users
    """
    router = APIRouter(tags=["users"])

    @router.get("/ping", response_model=Dict[str, Any])
    async def ping():
        """Health check endpoint for the user service."""
        return base_service.envelope(
            message="User service is alive",
            data={"timestamp": datetime.utcnow().isoformat()}
        )

    @router.post("/login", response_model=Dict[str, Any])
    async def login(login_data: UserLogin):
        """
        Authenticate a user and return an access token.

        Unknown email and wrong password produce the same 401.
        """
        try:
            user, token = await user_service.login(login_data.email, login_data.password)

            base_service.log_event("user.login", {"id": user.id})

            return base_service.envelope(
                message=f"Welcome {user.name}",
                data={
                    "accessToken": token.accessToken,
                    "tokenType": token.tokenType,
                    "expiresAt": token.expiresAt,
                    "user": user.summary(),
                }
            )
        except SSOServiceError as e:
            if e.status_code == status.HTTP_401_UNAUTHORIZED:
                base_service.log_event("user.login.failed", {"reason": e.message})
            _raise_http(e)
        except HTTPException:
            raise
        except Exception as e:
            base_service.log_error(e, context="User login")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="An error occurred while processing the login request"
            )

    @router.post("", response_model=Dict[str, Any])
    async def register_user(user_data: UserCreate):
        """
        Register a new user.

        Returns:
            Dict with the created user's summary
        """
        try:
            user = await user_service.register(user_data)

            base_service.log_event("user.registered", {"id": user.id})

            return base_service.envelope(
                message="User registered successfully",
                data=user.summary()
            )
        except SSOServiceError as e:
            _raise_http(e)
        except HTTPException:
            raise
        except Exception as e:
            base_service.log_error(e, context="User registration")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="An error occurred while creating the user"
            )

    @router.get("", response_model=Dict[str, Any])
    async def list_users(page: str = Query("1"), limit: str = Query("10")):
        """
        Get one page of users.

        Returns:
            Envelope with data, total, page and limit at the top level
        """
        try:
            result = await user_service.list_users(page, limit)
            return base_service.envelope(
                message="Users retrieved successfully",
                data=[u.model_dump() for u in result.data],
                total=result.total,
                page=result.page,
                limit=result.limit,
            )
        except SSOServiceError as e:
            _raise_http(e)
        except HTTPException:
            raise
        except Exception as e:
            base_service.log_error(e, context="List users")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="An error occurred while fetching users"
            )

    @router.get("/{user_id}", response_model=Dict[str, Any])
    async def get_user(user_id: str):
        """Get a single user by id."""
        try:
            user = await user_service.get_user(user_id)
            return base_service.envelope(
                message="User retrieved successfully",
                data=user.summary()
            )
        except SSOServiceError as e:
            _raise_http(e)
        except HTTPException:
            raise
        except Exception as e:
            base_service.log_error(e, context="Get user")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="An error occurred while fetching the user"
            )

    @router.put("/{user_id}", response_model=Dict[str, Any])
    async def update_user(user_id: str, update_data: UserUpdate):
        """
        Update a user.

        Args:
            user_id: Id of the user to update
            update_data: Fields to change; omitted fields are left alone
        """
        try:
            user = await user_service.update_user(user_id, update_data)

            base_service.log_event("user.updated", {
                "id": user_id,
                "fields_updated": list(update_data.model_dump(exclude_unset=True).keys())
            })

            return base_service.envelope(
                message=f"User {user.name} updated successfully",
                data=user.summary()
            )
        except SSOServiceError as e:
            _raise_http(e)
        except HTTPException:
            raise
        except Exception as e:
            base_service.log_error(e, context="Update user")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="An error occurred while updating the user"
            )

    @router.delete("/{user_id}", response_model=Dict[str, Any])
    async def delete_user(user_id: str):
        """Delete a user."""
        try:
            await user_service.delete_user(user_id)

            base_service.log_event("user.deleted", {"id": user_id})

            return base_service.envelope(
                message=f"User with ID {user_id} deleted successfully",
                data={"id": user_id}
            )
        except SSOServiceError as e:
            _raise_http(e)
        except HTTPException:
            raise
        except Exception as e:
            base_service.log_error(e, context="Delete user")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="An error occurred while deleting the user"
            )

    return router
