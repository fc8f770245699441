import uuid
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class AuthUser(BaseModel):
    """
    The authenticated principal taken from a verified bearer token.

    ``user_id`` is the ``sub`` claim and is trusted verbatim as the id of a
    row in ``users``.
    """

    user_id: uuid.UUID = Field(..., alias="sub")
    email: Optional[EmailStr] = None
    role: str = "user"

    model_config = {"populate_by_name": True}
