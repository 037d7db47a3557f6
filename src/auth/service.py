"""Authentication service layer.

Business logic for:
- User registration and login
- Session token creation
- Profile updates and role changes
- Tenant-scoped user queries
"""

from datetime import timedelta
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from src.auth.models import FIRST_USER_FLAG, User, normalize_username
from src.auth.permissions import (
    UserRole,
    can_assign_role,
    get_role_level,
)
from src.auth.schemas import (
    RegisterRequest,
    SessionUser,
    UpdateUserRequest,
    UserResponse,
)
from src.auth.security import create_access_token, hash_password, verify_password
from src.config.settings import get_settings
from src.core.datetime_utils import utcnow


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from src.tenants.service import TenantService

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class AuthError(Exception):
    """Base authentication error."""

    def __init__(self, message: str, code: str = "auth_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class InvalidCredentialsError(AuthError):
    """Invalid username or password."""

    def __init__(self, message: str = "Invalid username or password"):
        super().__init__(message, "invalid_credentials")


class UserExistsError(AuthError):
    """Username already taken."""

    def __init__(self, message: str = "Username already exists"):
        super().__init__(message, "user_exists")


class InvalidTenantError(AuthError):
    """Registration names a tenant that does not exist."""

    def __init__(self, message: str = "Invalid tenant"):
        super().__init__(message, "invalid_tenant")


class UserNotFoundError(AuthError):
    """User not found."""

    def __init__(self, message: str = "User not found"):
        super().__init__(message, "user_not_found")


class PermissionDeniedError(AuthError):
    """Permission denied for operation."""

    def __init__(self, message: str = "Access denied to this user"):
        super().__init__(message, "permission_denied")


# ==============================================================================
# Auth Service
# ==============================================================================


class AuthService:
    """Authentication service for user management and session tokens."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        tenant_service: "TenantService",
    ):
        """Initialize with Cassandra session.

        Args:
            session: Cassandra driver session
            keyspace: Keyspace name for queries
            tenant_service: Used to validate the tenant at registration
        """
        self.session = session
        self.keyspace = keyspace
        self.tenant_service = tenant_service
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for better performance."""
        self._get_user_by_id = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users WHERE id = ?"
        )
        self._get_user_id_by_username = self.session.prepare(
            f"SELECT user_id FROM {self.keyspace}.users_by_username WHERE username = ?"
        )
        self._get_users_by_tenant = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users WHERE tenant_id = ?"
        )
        self._get_flag = self.session.prepare(
            f"SELECT value FROM {self.keyspace}.system_flags WHERE name = ?"
        )
        self._claim_flag = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.system_flags (name, value)
            VALUES (?, ?) IF NOT EXISTS
        """)
        self._claim_username = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.users_by_username (username, user_id)
            VALUES (?, ?) IF NOT EXISTS
        """)
        self._insert_user = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.users (
                id, tenant_id, username, password_hash, first_name, last_name,
                email, mobile_number, gender, date_of_birth, profile_photo,
                education_level, school_college, year_of_study, role,
                created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._update_user = self.session.prepare(f"""
            UPDATE {self.keyspace}.users
            SET first_name = ?, last_name = ?, email = ?, mobile_number = ?,
                gender = ?, date_of_birth = ?, profile_photo = ?,
                education_level = ?, school_college = ?, year_of_study = ?,
                role = ?, password_hash = ?, updated_at = ?
            WHERE id = ?
        """)
        self._update_password_hash = self.session.prepare(
            f"UPDATE {self.keyspace}.users SET password_hash = ? WHERE id = ?"
        )

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def get_user_by_id(self, user_id: UUID) -> User | None:
        """Get user by ID."""
        result = await self.session.aexecute(self._get_user_by_id, [user_id])
        row = result.one()
        return User.from_row(row) if row else None

    async def get_user_by_username(self, username: str) -> User | None:
        """Get user by username (case-insensitive)."""
        result = await self.session.aexecute(
            self._get_user_id_by_username, [normalize_username(username)]
        )
        row = result.one()
        if not row:
            return None
        return await self.get_user_by_id(row.user_id)

    async def list_tenant_users(
        self,
        tenant_id: UUID,
        role: UserRole | None = None,
    ) -> list[User]:
        """List users of a tenant, optionally filtered by role tag."""
        rows = await self.session.aexecute(self._get_users_by_tenant, [tenant_id])
        users = [User.from_row(r) for r in rows]
        if role is not None:
            users = [u for u in users if u.role == role.value]
        return sorted(users, key=lambda u: u.created_at)

    async def get_tenant_user(self, actor: SessionUser, user_id: UUID) -> User:
        """Get a user the caller is allowed to see.

        Raises:
            UserNotFoundError: If the user does not exist
            PermissionDeniedError: If the user belongs to another tenant
        """
        user = await self.get_user_by_id(user_id)
        if user is None:
            raise UserNotFoundError
        if user.tenant_id != actor.tenant_id:
            raise PermissionDeniedError
        return user

    # ==========================================================================
    # Registration & Login
    # ==========================================================================

    async def register_user(
        self,
        data: RegisterRequest,
        role: UserRole | None = None,
    ) -> User:
        """Register a new user.

        Self-registered accounts are students, except the very first account
        of the whole system, which becomes an admin. Tenant admins are
        otherwise created with an explicit `role`, by tenant creation or the
        bootstrap script.

        Raises:
            InvalidTenantError: If the tenant does not exist
            UserExistsError: If the username is taken
        """
        tenant = await self.tenant_service.get_tenant(data.tenant_id)
        if tenant is None:
            raise InvalidTenantError

        user = User(
            tenant_id=data.tenant_id,
            username=data.username,
            password_hash=hash_password(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            email=data.email,
            mobile_number=data.mobile_number,
            gender=data.gender,
            date_of_birth=data.date_of_birth,
            profile_photo=data.profile_photo,
            education_level=data.education_level,
            school_college=data.school_college,
            year_of_study=data.year_of_study,
            role=(role or UserRole.STUDENT).value,
        )

        claim = await self.session.aexecute(
            self._claim_username, [user.username, user.id]
        )
        if not claim.was_applied:
            raise UserExistsError

        if role is None and await self._claim_first_user(user.id):
            user.role = UserRole.ADMIN.value

        await self._insert_user_to_db(user)

        logger.info(
            "user_registered",
            user_id=str(user.id),
            tenant_id=str(user.tenant_id),
            role=user.role,
        )
        return user

    async def _claim_first_user(self, user_id: UUID) -> bool:
        """Atomically mark `user_id` as the first account of the system."""
        existing = await self.session.aexecute(self._get_flag, [FIRST_USER_FLAG])
        if existing.one():
            return False
        claim = await self.session.aexecute(
            self._claim_flag, [FIRST_USER_FLAG, user_id]
        )
        return claim.was_applied

    async def _insert_user_to_db(self, user: User) -> None:
        await self.session.aexecute(
            self._insert_user,
            [
                user.id,
                user.tenant_id,
                user.username,
                user.password_hash,
                user.first_name,
                user.last_name,
                user.email,
                user.mobile_number,
                user.gender,
                user.date_of_birth,
                user.profile_photo,
                user.education_level,
                user.school_college,
                user.year_of_study,
                user.role,
                user.created_at,
                user.updated_at,
            ],
        )

    async def authenticate_user(self, username: str, password: str) -> User:
        """Authenticate user with username and password.

        Raises:
            InvalidCredentialsError: If credentials are invalid
        """
        user = await self.get_user_by_username(username)
        if user is None:
            raise InvalidCredentialsError

        is_valid, new_hash = verify_password(password, user.password_hash)
        if not is_valid:
            logger.info("login_failed", username=user.username)
            raise InvalidCredentialsError

        if new_hash:
            user.password_hash = new_hash
            await self.session.aexecute(
                self._update_password_hash, [new_hash, user.id]
            )

        return user

    def create_session_token(self, user: User) -> str:
        """Issue a session token carrying the claims handlers rely on."""
        settings = get_settings()
        return create_access_token(
            {
                "sub": str(user.id),
                "username": user.username,
                "role": user.role,
                "tenant_id": str(user.tenant_id),
            },
            expires_delta=timedelta(minutes=settings.auth_access_token_expire_minutes),
        )

    # ==========================================================================
    # Updates
    # ==========================================================================

    async def update_user(
        self,
        actor: SessionUser,
        user_id: UUID,
        data: UpdateUserRequest,
    ) -> User:
        """Update a user's profile.

        Callers may update themselves; admins may update users of their
        tenant. A role change needs an actor allowed to grant that role and
        at least as privileged as the target.

        Raises:
            UserNotFoundError: If the user does not exist
            PermissionDeniedError: On tenant mismatch or insufficient role
        """
        user = await self.get_tenant_user(actor, user_id)
        if actor.id != user.id and not actor.is_admin:
            raise PermissionDeniedError

        if data.role is not None and data.role.value != user.role:
            if not can_assign_role(actor.role, data.role) or get_role_level(
                actor.role
            ) < get_role_level(user.role):
                raise PermissionDeniedError("Insufficient permissions to change role")
            user.role = data.role.value

        for field in (
            "first_name",
            "last_name",
            "email",
            "mobile_number",
            "gender",
            "date_of_birth",
            "profile_photo",
            "education_level",
            "school_college",
            "year_of_study",
        ):
            value = getattr(data, field)
            if value is not None:
                setattr(user, field, value)

        if data.password:
            user.password_hash = hash_password(data.password)

        user.updated_at = utcnow()

        await self.session.aexecute(
            self._update_user,
            [
                user.first_name,
                user.last_name,
                user.email,
                user.mobile_number,
                user.gender,
                user.date_of_birth,
                user.profile_photo,
                user.education_level,
                user.school_college,
                user.year_of_study,
                user.role,
                user.password_hash,
                user.updated_at,
                user.id,
            ],
        )

        logger.info(
            "user_updated",
            user_id=str(user.id),
            by=str(actor.id),
            password_changed=bool(data.password),
        )
        return user

    def to_response(self, user: User) -> UserResponse:
        """Convert User model to response schema."""
        return UserResponse.model_validate(user)
