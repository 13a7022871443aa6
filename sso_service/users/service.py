"""
User management service.

This module provides functionality for:
- User registration
- Credential validation and token issuance
- User lookup, listing, update and deletion
"""
import logging
from typing import Any, Optional, Tuple, Union

from sso_service.config import Settings
from sso_service.exceptions import (
    ConflictError, InternalError, InvalidInputError, NotFoundError,
    SSOServiceError, UnauthorizedError,
)
from sso_service.users.jwt import Token, create_token
from sso_service.users.models import UserRecord
from sso_service.users.passwords import check_password, hash_password, password_too_long
from sso_service.users.schemas import UserCreate, UserOut, UserPage, UserUpdate
from sso_service.users.store import UserStore

logger = logging.getLogger(__name__)

# Same message for unknown email and wrong password
INVALID_CREDENTIALS = "Invalid email or password"


def canonical_email(email: str) -> str:
    """Lookup key for an address: trimmed and lowercased."""
    return email.strip().lower()


def parse_positive_int(value: Union[str, int, None], name: str) -> int:
    """Parse a pagination parameter, rejecting anything below 1."""
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"Invalid {name} number. {name.capitalize()} must be a positive integer.")
    if number < 1:
        raise InvalidInputError(f"Invalid {name} number. {name.capitalize()} must be a positive integer.")
    return number


class UserService:
    """
    Service for user management operations.

    The store is passed in once at wiring time; the service keeps no other
    mutable state.
    """

    def __init__(self, store: UserStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or Settings()
        self._dummy_hash = None

    async def _burn_password_check(self, password: str):
        # Unknown emails still pay for one bcrypt comparison
        if self._dummy_hash is None:
            self._dummy_hash = await hash_password("not-a-real-password", self.settings.bcrypt_rounds)
        await check_password(password, self._dummy_hash)

    def _check_password_input(self, password: str):
        if not password:
            raise InvalidInputError("Password is required")
        if password_too_long(password):
            raise InvalidInputError("Password must be at most 72 bytes")

    async def register(self, user_data: UserCreate) -> UserRecord:
        """
        Register a new user.

        Args:
            user_data: User registration data

        Returns:
            The created record

        Raises:
            ConflictError: If the email is already in use
            InvalidInputError: If email or password is missing
            InternalError: For any other failure
        """
        if not user_data.email:
            raise InvalidInputError("Email is required")
        self._check_password_input(user_data.password)
        email = canonical_email(user_data.email)

        try:
            # Fast path only; the unique constraint decides
            if await self.store.find_by_email(email) is not None:
                raise ConflictError("Email already in use")

            hashed_password = await hash_password(user_data.password, self.settings.bcrypt_rounds)
            return await self.store.insert({
                "name": user_data.name,
                "email": email,
                "hashed_password": hashed_password,
                "company": user_data.company,
                "roles": user_data.roles,
            })
        except ConflictError:
            raise
        except Exception as e:
            logger.error("User creation failed: %s", e.__class__.__name__)
            raise InternalError("An error occurred while creating the user") from e

    async def authenticate(self, email: str, password: str) -> UserRecord:
        """
        Validate credentials.

        Returns:
            The full record, hash included, for internal use by the caller

        Raises:
            UnauthorizedError: If the email is unknown or the password is wrong
        """
        if not email or not password:
            raise UnauthorizedError(INVALID_CREDENTIALS)

        try:
            user = await self.store.find_by_email(canonical_email(email))
        except Exception as e:
            logger.error("Credential lookup failed: %s", e.__class__.__name__)
            raise InternalError("An error occurred while processing the login request") from e

        if user is None:
            await self._burn_password_check(password)
            raise UnauthorizedError(INVALID_CREDENTIALS)

        if not await check_password(password, user.hashed_password):
            raise UnauthorizedError(INVALID_CREDENTIALS)

        return user

    def issue_token(self, user: UserRecord) -> str:
        """Sign an access token carrying id, name, email and roles."""
        return self._create_token(user).accessToken

    def _create_token(self, user: UserRecord) -> Token:
        return create_token(
            user,
            self.settings.jwt_secret,
            algorithm=self.settings.jwt_algorithm,
            expire_minutes=self.settings.access_token_expire_minutes,
        )

    async def login(self, email: str, password: str) -> Tuple[UserRecord, Token]:
        """Authenticate and return the user together with a fresh token."""
        user = await self.authenticate(email, password)
        try:
            token = self._create_token(user)
        except Exception as e:
            logger.error("Token signing failed: %s", e.__class__.__name__)
            raise InternalError("An error occurred while processing the login request") from e
        return user, token

    async def list_users(self, page: Any = 1, limit: Any = 10) -> UserPage:
        """
        Get one page of users.

        Raises:
            InvalidInputError: If page or limit is not a positive integer
        """
        page_number = parse_positive_int(page, "page")
        limit_number = parse_positive_int(limit, "limit")
        offset = (page_number - 1) * limit_number

        try:
            total = await self.store.count()
            users = await self.store.list_page(offset, limit_number)
        except SSOServiceError:
            raise
        except Exception as e:
            raise InternalError("An error occurred while fetching users") from e

        return UserPage(
            data=[UserOut(**u.summary()) for u in users],
            total=total,
            page=page_number,
            limit=limit_number,
        )

    async def get_user(self, user_id: str) -> UserRecord:
        user = await self.store.find_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User with ID {user_id} not found")
        return user

    async def update_user(self, user_id: str, update_data: UserUpdate) -> UserRecord:
        """
        Update user information.

        A new password is hashed before it reaches the store.

        Raises:
            NotFoundError: If the user does not exist
            ConflictError: If the new email is already in use
        """
        fields = update_data.model_dump(exclude_unset=True)
        fields = {k: v for k, v in fields.items() if v is not None}

        if "email" in fields:
            fields["email"] = canonical_email(fields["email"])

        if "password" in fields:
            password = fields.pop("password")
            self._check_password_input(password)
            fields["hashed_password"] = await hash_password(password, self.settings.bcrypt_rounds)

        if not fields:
            return await self.get_user(user_id)

        try:
            updated = await self.store.update(user_id, fields)
        except ConflictError:
            raise
        except Exception as e:
            raise InternalError("An error occurred while updating the user") from e

        if updated is None:
            raise NotFoundError(f"User with ID {user_id} not found")
        return updated

    async def delete_user(self, user_id: str) -> None:
        try:
            deleted = await self.store.delete(user_id)
        except Exception as e:
            raise InternalError("An error occurred while deleting the user") from e

        if not deleted:
            raise NotFoundError(f"User with ID {user_id} not found")
