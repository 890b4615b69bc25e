"""
Purchase Request Routes - submission, approval chain and dashboard
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from typing import Optional, List

from app.purchase_requests.application.use_cases import (
    CreatePurchaseRequestCommand,
    CreatePurchaseRequestUseCase,
    DecidePurchaseRequestUseCase,
    GetDashboardMetricsUseCase,
    GetPurchaseRequestUseCase,
    ListPurchaseRequestsQuery,
    ListPurchaseRequestsUseCase,
    PRItemInput,
)
from app.purchase_requests.domain.models import Decision, PRStatus, Priority
from app.purchase_requests.presentation.response_mapper import (
    metrics_to_response,
    purchase_request_to_response,
)
from app.shared.errors import DomainError
from app.users.domain.models import User
from routes.auth_routes import get_current_user
from routes.dependencies import (
    get_pr_repository,
    get_user_repository,
    new_id,
    to_http_exception,
    utcnow,
)

# Create router
purchase_requests_router = APIRouter(prefix="/api", tags=["Purchase Requests"])


# ==================== PYDANTIC MODELS ====================

class PRItemCreate(BaseModel):
    product_name: str
    quantity: int = 1
    unit: str = "pieces"
    estimated_price: float = 0
    priority: Priority = Priority.MEDIUM
    image: Optional[str] = None


class PurchaseRequestCreate(BaseModel):
    items: List[PRItemCreate]


class ApproveRequestData(BaseModel):
    comment: Optional[str] = None


class RejectRequestData(BaseModel):
    reason: str = Field(min_length=1)


# ==================== PURCHASE REQUEST ROUTES ====================

@purchase_requests_router.post("/purchase-requests")
async def create_purchase_request(
    request_data: PurchaseRequestCreate,
    current_user: User = Depends(get_current_user),
    repository=Depends(get_pr_repository),
):
    """Submit a purchase request of one to five items"""
    use_case = CreatePurchaseRequestUseCase(
        repository=repository,
        id_generator=new_id,
        clock=utcnow,
    )
    command = CreatePurchaseRequestCommand(
        items=[
            PRItemInput(
                product_name=item.product_name,
                quantity=item.quantity,
                unit=item.unit,
                estimated_price=item.estimated_price,
                priority=item.priority,
                image=item.image,
            )
            for item in request_data.items
        ]
    )

    try:
        request = await use_case.execute(command, current_user)
    except DomainError as exc:
        raise to_http_exception(exc)

    return purchase_request_to_response(request)


@purchase_requests_router.get("/purchase-requests")
async def get_purchase_requests(
    user_id: Optional[str] = None,
    status: Optional[PRStatus] = None,
    search: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    repository=Depends(get_pr_repository),
    users=Depends(get_user_repository),
):
    """Get the purchase requests visible to the user, newest first"""
    use_case = ListPurchaseRequestsUseCase(repository, users)
    query = ListPurchaseRequestsQuery(user_id=user_id, status=status, search=search)
    try:
        requests = await use_case.execute(query, current_user)
    except DomainError as exc:
        raise to_http_exception(exc)

    return [purchase_request_to_response(req) for req in requests]


@purchase_requests_router.get("/purchase-requests/{pr_id}")
async def get_purchase_request(
    pr_id: str,
    current_user: User = Depends(get_current_user),
    repository=Depends(get_pr_repository),
):
    """Get a single purchase request with its approvals and audit log"""
    try:
        request = await GetPurchaseRequestUseCase(repository).execute(pr_id, current_user)
    except DomainError as exc:
        raise to_http_exception(exc)

    return purchase_request_to_response(request)


@purchase_requests_router.post("/purchase-requests/{pr_id}/approve")
async def approve_purchase_request(
    pr_id: str,
    approval_data: Optional[ApproveRequestData] = None,
    current_user: User = Depends(get_current_user),
    repository=Depends(get_pr_repository),
):
    """Approve the current step of a purchase request"""
    use_case = DecidePurchaseRequestUseCase(repository, id_generator=new_id, clock=utcnow)
    comment = approval_data.comment if approval_data else None
    try:
        request = await use_case.execute(pr_id, Decision.APPROVED, current_user, comment)
    except DomainError as exc:
        raise to_http_exception(exc)

    return purchase_request_to_response(request)


@purchase_requests_router.post("/purchase-requests/{pr_id}/reject")
async def reject_purchase_request(
    pr_id: str,
    rejection_data: RejectRequestData,
    current_user: User = Depends(get_current_user),
    repository=Depends(get_pr_repository),
):
    """Reject a purchase request - a reason is required"""
    use_case = DecidePurchaseRequestUseCase(repository, id_generator=new_id, clock=utcnow)
    try:
        request = await use_case.execute(
            pr_id, Decision.REJECTED, current_user, rejection_data.reason
        )
    except DomainError as exc:
        raise to_http_exception(exc)

    return purchase_request_to_response(request)


# ==================== DASHBOARD ROUTES ====================

@purchase_requests_router.get("/dashboard/metrics")
async def get_dashboard_metrics(
    current_user: User = Depends(get_current_user),
    repository=Depends(get_pr_repository),
):
    """Summary counts for the dashboard"""
    metrics = await GetDashboardMetricsUseCase(repository).execute(current_user)
    return metrics_to_response(metrics)
