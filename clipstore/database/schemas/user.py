# schemas/user.py
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from datetime import datetime


class UserBase(BaseModel):
    email: EmailStr


class UserCreate(UserBase):
    password: str = Field(..., min_length=8)


class LoginRequest(UserBase):
    password: str


class UserInDB(UserBase):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id")
    password: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class UserResponse(UserBase):
    id: str
