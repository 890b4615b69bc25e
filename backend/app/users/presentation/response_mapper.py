from typing import Any, Dict

from app.users.domain.models import User


def user_to_response(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "department": user.department,
        "position": user.position,
        "role": user.role.value,
        "status": user.status.value,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }
