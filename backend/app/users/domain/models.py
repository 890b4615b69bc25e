import enum
from dataclasses import dataclass
from datetime import datetime


class UserRole(str, enum.Enum):
    ADMIN = "Admin"
    C_LEVEL = "C Level"
    SUPERVISOR = "Supervisor"
    EMPLOYEE = "Employee"


class UserStatus(str, enum.Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


@dataclass(frozen=True)
class User:
    id: str
    name: str
    email: str
    department: str
    position: str
    role: UserRole
    status: UserStatus
    created_at: datetime

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE
