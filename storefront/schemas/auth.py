from pydantic import BaseModel
from typing import Optional


class AuthState(BaseModel):
    access_token: Optional[str] = None
    user_id: Optional[int] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)
