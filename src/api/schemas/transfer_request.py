"""Request schemas for Transfer API

Pydantic models for validating incoming HTTP requests.
"""

from typing import Optional
from pydantic import BaseModel, Field
from src.domain.transfer import NOTE_MAX_LENGTH


class CreateTransferRequestSchema(BaseModel):
    """
    Request schema for creating a transfer

    Used for POST /transfers endpoint. Same-user transfers pass this
    schema and are rejected by the use case (422).
    """

    from_user_id: int = Field(
        ...,
        alias="fromUserId",
        gt=0,
        description="Sender user ID"
    )

    to_user_id: int = Field(
        ...,
        alias="toUserId",
        gt=0,
        description="Receiver user ID"
    )

    amount: int = Field(
        ...,
        gt=0,
        description="Points to transfer (must be > 0)"
    )

    note: Optional[str] = Field(
        default=None,
        max_length=NOTE_MAX_LENGTH,
        description="Optional note (max 512 characters)"
    )

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "fromUserId": 1,
                "toUserId": 2,
                "amount": 500,
                "note": "dinner split"
            }
        }
