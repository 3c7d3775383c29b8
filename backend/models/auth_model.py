from pydantic import BaseModel, EmailStr
from typing import Optional
from enum import Enum

class UserRole(str, Enum):
    STUDENT = "student"
    INSTRUCTOR = "instructor"
    ADMIN = "admin"

class User(BaseModel):
    id: str
    email: EmailStr
    full_name: Optional[str] = None
    role: UserRole = UserRole.STUDENT
