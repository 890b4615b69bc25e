"""
Notification Routes - per-user inbox
"""
from fastapi import APIRouter, Depends
from typing import Optional

from app.purchase_requests.application.use_cases import (
    ListNotificationsUseCase,
    MarkNotificationReadUseCase,
)
from app.purchase_requests.presentation.response_mapper import notification_to_response
from app.shared.errors import DomainError
from app.users.domain.models import User
from routes.auth_routes import get_current_user
from routes.dependencies import get_pr_repository, get_user_repository, to_http_exception

# Create router
notifications_router = APIRouter(prefix="/api", tags=["Notifications"])


@notifications_router.get("/notifications")
async def get_notifications(
    user_id: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    repository=Depends(get_pr_repository),
    users=Depends(get_user_repository),
):
    """Get notifications, newest first"""
    use_case = ListNotificationsUseCase(repository, users)
    try:
        notifications = await use_case.execute(current_user, user_id)
    except DomainError as exc:
        raise to_http_exception(exc)

    return [notification_to_response(n) for n in notifications]


@notifications_router.get("/notifications/unread-count")
async def get_unread_count(
    current_user: User = Depends(get_current_user),
    repository=Depends(get_pr_repository),
    users=Depends(get_user_repository),
):
    """Count unread notifications of the current user"""
    notifications = await ListNotificationsUseCase(repository, users).execute(current_user)
    return {"unread_count": sum(1 for n in notifications if not n.read)}


@notifications_router.post("/notifications/{notification_id}/read")
async def mark_notification_read(
    notification_id: str,
    current_user: User = Depends(get_current_user),
    repository=Depends(get_pr_repository),
):
    """Mark a notification as read - repeating the call is harmless"""
    try:
        notification = await MarkNotificationReadUseCase(repository).execute(
            notification_id, current_user
        )
    except DomainError as exc:
        raise to_http_exception(exc)

    return notification_to_response(notification)
