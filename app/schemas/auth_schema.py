import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CurrentUser(BaseModel):
    """Identity carried by a verified access token.

    The voting code trusts ``user_id`` as given; accounts are managed by the
    auth service that issued the token.
    """

    model_config = ConfigDict(frozen=True)

    user_id: uuid.UUID = Field(..., description="Database id of the user")
    email: Optional[str] = Field(None, description="User's email address")
    name: Optional[str] = Field(None, description="Display name")
