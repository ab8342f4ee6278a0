"""User Domain Entity

Users are owned by the profile service; the points core only reads them.
`points` is the seed balance used while a user has no ledger history.
"""

from datetime import datetime
from typing import Optional
from sqlmodel import Field, Column
from sqlalchemy import BigInteger, Integer, String
from src.domain.base import BaseModel


class User(BaseModel, table=True):
    """
    User - Read-only view of a registered user

    Domain Rules:
    - Identified by a numeric id
    - points is only consulted when the user has no ledger entries
    """

    __tablename__ = "users"

    id: Optional[int] = Field(
        default=None,
        sa_column=Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True),
        description="Unique user identifier (auto-increment)"
    )

    first_name: str = Field(
        sa_column=Column(String(100), nullable=False),
        description="First name"
    )

    last_name: str = Field(
        sa_column=Column(String(100), nullable=False),
        description="Last name"
    )

    email: str = Field(
        sa_column=Column(String(255), nullable=False, unique=True),
        description="Email address (unique)"
    )

    points: int = Field(
        default=0,
        sa_column=Column(BigInteger, nullable=False, default=0),
        description="Seed point balance (used when no ledger history exists)"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="User creation timestamp"
    )

    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Last profile update timestamp"
    )

    class Config:
        """SQLModel configuration"""
        json_schema_extra = {
            "example": {
                "id": 1,
                "first_name": "Somchai",
                "last_name": "Jaidee",
                "email": "somchai@example.com",
                "points": 1500,
                "created_at": "2024-01-01T00:00:00Z",
                "updated_at": "2024-01-01T00:00:00Z"
            }
        }
