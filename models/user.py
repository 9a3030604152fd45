from enum import Enum
from typing import Optional

from pydantic import BaseModel


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    EMPLOYEE = "EMPLOYEE"


# Profile document stored in the Firestore "users" collection, keyed by uid
class UserProfile(BaseModel):
    id: str
    name: str
    email: str
    role: UserRole = UserRole.EMPLOYEE
    pps: str = ""
    phone: str = ""


class UserProfileUpdate(BaseModel):
    name: Optional[str] = None
    role: Optional[UserRole] = None
    pps: Optional[str] = None
    phone: Optional[str] = None
