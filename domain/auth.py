"""Domain Entities - Administrator accounts"""
from pydantic import BaseModel, Field
from uuid import UUID, uuid4
from typing import Optional


class User(BaseModel):
    """Property administrator; the public booking flow needs no account"""
    user_id: UUID = Field(default_factory=uuid4)
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    disabled: bool = False

    class Config:
        from_attributes = True


class UserInDB(User):
    hashed_password: str
