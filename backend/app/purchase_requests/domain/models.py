import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence

TOTAL_STEPS = 2
MAX_ITEMS = 5


class PRStatus(str, enum.Enum):
    DRAFT = "Draft"
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class Priority(str, enum.Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    URGENT = "Urgent"


class Decision(str, enum.Enum):
    APPROVED = "Approved"
    REJECTED = "Rejected"


class NotificationType(str, enum.Enum):
    PR_SUBMITTED = "PR_SUBMITTED"
    PR_APPROVED = "PR_APPROVED"
    PR_REJECTED = "PR_REJECTED"
    PR_PENDING_APPROVAL = "PR_PENDING_APPROVAL"


@dataclass(frozen=True)
class PRItem:
    id: str
    pr_id: str
    product_name: str
    quantity: int
    unit: str
    estimated_price: float
    priority: Priority
    image: Optional[str] = None

    @property
    def line_total(self) -> float:
        return self.quantity * self.estimated_price


@dataclass(frozen=True)
class Approval:
    id: str
    pr_id: str
    step: int
    approver_id: str
    approver_name: str
    decision: Decision
    decided_at: datetime
    comment: Optional[str] = None


@dataclass(frozen=True)
class AuditEntry:
    id: str
    pr_id: str
    action: str
    user_id: str
    user_name: str
    timestamp: datetime
    details: Optional[str] = None


@dataclass(frozen=True)
class PurchaseRequest:
    id: str
    pr_number: str
    pr_date: str
    pr_seq: int
    requester_id: str
    requester_name: str
    requester_position: str
    requester_department: str
    requester_email: str
    status: PRStatus
    current_step: int
    total_amount: float
    created_at: datetime
    updated_at: datetime
    total_steps: int = TOTAL_STEPS
    items: Sequence[PRItem] = field(default_factory=tuple)
    approvals: Sequence[Approval] = field(default_factory=tuple)
    audit_log: Sequence[AuditEntry] = field(default_factory=tuple)

    @property
    def is_terminal(self) -> bool:
        return self.status in (PRStatus.APPROVED, PRStatus.REJECTED)


@dataclass(frozen=True)
class Notification:
    id: str
    user_id: str
    type: NotificationType
    title: str
    message: str
    pr_id: str
    pr_number: str
    created_at: datetime
    read: bool = False


@dataclass(frozen=True)
class DashboardMetrics:
    total_prs: int
    pending_approvals: int
    approved_prs: int
    rejected_prs: int
    total_value: float
    my_prs: int


@dataclass(frozen=True)
class RequestFilters:
    status: Optional[PRStatus] = None
    search: Optional[str] = None
