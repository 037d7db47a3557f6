"""Database models for authentication.

Cassandra table definitions for:
- users: Main user table, indexed by tenant for admin listings
- users_by_username: Lookup enforcing global username uniqueness
- system_flags: One-shot system markers, e.g. who registered first

Note: Uses cassandra-driver directly (not ORM) for flexibility.
Tables are created via CQL statements in the database module.
"""

from datetime import date, datetime
from typing import Any
from uuid import UUID, uuid4

from src.auth.permissions import UserRole
from src.core.datetime_utils import ensure_utc_aware, to_date, utcnow


USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users (
    id UUID PRIMARY KEY,
    tenant_id UUID,
    username TEXT,
    password_hash TEXT,
    first_name TEXT,
    last_name TEXT,
    email TEXT,
    mobile_number TEXT,
    gender TEXT,
    date_of_birth DATE,
    profile_photo TEXT,
    education_level TEXT,
    school_college TEXT,
    year_of_study TEXT,
    role TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

USER_TENANT_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS users_tenant_id_idx ON {keyspace}.users (tenant_id)
"""

USERS_BY_USERNAME_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users_by_username (
    username TEXT PRIMARY KEY,
    user_id UUID
)
"""

SYSTEM_FLAGS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.system_flags (
    name TEXT PRIMARY KEY,
    value UUID
)
"""

AUTH_TABLES_CQL = [
    USER_TABLE_CQL,
    USER_TENANT_INDEX_CQL,
    USERS_BY_USERNAME_TABLE_CQL,
    SYSTEM_FLAGS_TABLE_CQL,
]

# Set once, by the first account ever registered
FIRST_USER_FLAG = "first_user"


def normalize_username(username: str) -> str:
    """Usernames are unique case-insensitively."""
    return username.strip().lower()


class User:
    """User entity for authentication and authorization.

    Attributes:
        id: Unique identifier (UUID)
        tenant_id: Owning tenant
        username: Unique login name (lowercase)
        password_hash: Argon2id hashed password
        first_name, last_name, email, mobile_number, gender: Profile
        date_of_birth: Birth date
        profile_photo: Profile photo URL
        education_level, school_college, year_of_study: Academic profile
        role: Role tag (student, admin, superadmin)
        created_at: Account creation timestamp
        updated_at: Last update timestamp
    """

    def __init__(
        self,
        id: UUID | None = None,
        tenant_id: UUID | None = None,
        username: str = "",
        password_hash: str = "",
        first_name: str = "",
        last_name: str = "",
        email: str = "",
        mobile_number: str | None = None,
        gender: str | None = None,
        date_of_birth: date | None = None,
        profile_photo: str | None = None,
        education_level: str | None = None,
        school_college: str | None = None,
        year_of_study: str | None = None,
        role: str = UserRole.STUDENT.value,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.tenant_id = tenant_id
        self.username = normalize_username(username)
        self.password_hash = password_hash
        self.first_name = first_name
        self.last_name = last_name
        self.email = email.lower() if email else email
        self.mobile_number = mobile_number
        self.gender = gender
        self.date_of_birth = date_of_birth
        self.profile_photo = profile_photo
        self.education_level = education_level
        self.school_college = school_college
        self.year_of_study = year_of_study
        self.role = role
        self.created_at = ensure_utc_aware(created_at) or utcnow()
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "User":
        """Create User instance from Cassandra row."""
        return cls(
            id=row.id,
            tenant_id=row.tenant_id,
            username=row.username,
            password_hash=row.password_hash,
            first_name=row.first_name or "",
            last_name=row.last_name or "",
            email=row.email or "",
            mobile_number=row.mobile_number,
            gender=row.gender,
            date_of_birth=to_date(row.date_of_birth),
            profile_photo=row.profile_photo,
            education_level=row.education_level,
            school_college=row.school_college,
            year_of_study=row.year_of_study,
            role=row.role or UserRole.STUDENT.value,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary (without password hash)."""
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "username": self.username,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "mobile_number": self.mobile_number,
            "gender": self.gender,
            "date_of_birth": self.date_of_birth,
            "profile_photo": self.profile_photo,
            "education_level": self.education_level,
            "school_college": self.school_college,
            "year_of_study": self.year_of_study,
            "role": self.role,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<User {self.username} ({self.role})>"
