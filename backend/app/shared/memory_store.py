from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict

if TYPE_CHECKING:
    from app.purchase_requests.domain.models import Notification, PurchaseRequest
    from app.users.domain.models import User


@dataclass
class InMemoryStore:
    """Process-wide state shared by the in-memory repositories.

    Dicts keep insertion order, which is the order users and requests are
    listed in.
    """

    users: Dict[str, "User"] = field(default_factory=dict)
    requests: Dict[str, "PurchaseRequest"] = field(default_factory=dict)
    notifications: Dict[str, "Notification"] = field(default_factory=dict)
    pr_sequence: Dict[str, int] = field(default_factory=dict)
