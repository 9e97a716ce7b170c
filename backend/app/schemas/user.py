"""Authentication schemas."""
from typing import Optional

from pydantic import BaseModel


class TokenData(BaseModel):
    """Claims read from a verified access token."""
    user_id: str
    email: Optional[str] = None
    token_version: int = 0
