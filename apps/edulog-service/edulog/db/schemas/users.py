from typing import Optional
from pydantic import BaseModel


class IdentityBase(BaseModel):
    email: str
    full_name: Optional[str] = None
    preferred_language: str = 'ko'
    role: str = 'member'


class IdentityCreate(IdentityBase):
    pass
