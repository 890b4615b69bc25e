from dataclasses import asdict
from typing import Any, Dict

from app.purchase_requests.domain.models import (
    DashboardMetrics,
    Notification,
    PurchaseRequest,
)


def _iso(value):
    return value.isoformat() if value else None


def purchase_request_to_response(request: PurchaseRequest) -> Dict[str, Any]:
    return {
        "id": request.id,
        "pr_number": request.pr_number,
        "requester_id": request.requester_id,
        "requester_name": request.requester_name,
        "requester_position": request.requester_position,
        "requester_department": request.requester_department,
        "requester_email": request.requester_email,
        "status": request.status.value,
        "current_step": request.current_step,
        "total_steps": request.total_steps,
        "total_amount": request.total_amount,
        "created_at": _iso(request.created_at),
        "updated_at": _iso(request.updated_at),
        "items": [
            {
                "id": item.id,
                "product_name": item.product_name,
                "quantity": item.quantity,
                "unit": item.unit,
                "estimated_price": item.estimated_price,
                "priority": item.priority.value,
                "image": item.image,
            }
            for item in request.items
        ],
        "approvals": [
            {
                "id": approval.id,
                "step": approval.step,
                "approver_id": approval.approver_id,
                "approver_name": approval.approver_name,
                "decision": approval.decision.value,
                "comment": approval.comment,
                "decided_at": _iso(approval.decided_at),
            }
            for approval in request.approvals
        ],
        "audit_log": [
            {
                "id": entry.id,
                "action": entry.action,
                "user_id": entry.user_id,
                "user_name": entry.user_name,
                "timestamp": _iso(entry.timestamp),
                "details": entry.details,
            }
            for entry in request.audit_log
        ],
    }


def notification_to_response(notification: Notification) -> Dict[str, Any]:
    return {
        "id": notification.id,
        "user_id": notification.user_id,
        "type": notification.type.value,
        "title": notification.title,
        "message": notification.message,
        "pr_id": notification.pr_id,
        "pr_number": notification.pr_number,
        "read": notification.read,
        "created_at": _iso(notification.created_at),
    }


def metrics_to_response(metrics: DashboardMetrics) -> Dict[str, Any]:
    return asdict(metrics)
