# checkout/models/user.py
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class User(SQLModel, table=True):
    """
    Persistent mirror of an authenticated identity.

    Identity:
      - id: the token "sub" claim, kept as an opaque string

    Role:
      - "user" | "admin"
      - admins may read any order and manage products / order status.

    Passwords live with the auth provider; this table only mirrors
    identity, name, and application role.
    """

    __tablename__ = "users"

    id: str = Field(
        primary_key=True,
        max_length=64,
        description="Matches the token 'sub' claim",
    )

    email: str = Field(
        unique=True,
        index=True,
    )

    name: str = Field(
        max_length=50,
        description="Display name; first part of email by default",
    )

    # Application role
    role: str = Field(
        default="user",
        index=True,
        description="Application role: user | admin",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
