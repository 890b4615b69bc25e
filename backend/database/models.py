"""
PostgreSQL Database Models - SQLAlchemy ORM
Tables for the Purchase Request workflow
"""
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import (
    Integer, String, Text, DateTime, Boolean, Float,
    ForeignKey, Index
)
from sqlalchemy.orm import Mapped, mapped_column
import uuid as uuid_lib

from .connection import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ==================== USER MODEL ====================

class User(Base):
    """User table - stores all system users"""
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid_lib.uuid4()))
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    department: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    position: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="Active")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index('idx_users_role_created_at', 'role', 'created_at'),
    )


# ==================== PURCHASE REQUEST MODELS ====================

class PurchaseRequest(Base):
    """Purchase request - main request table with a requester snapshot"""
    __tablename__ = "purchase_requests"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid_lib.uuid4()))
    pr_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    pr_date: Mapped[str] = mapped_column(String(8), nullable=False)
    pr_seq: Mapped[int] = mapped_column(Integer, nullable=False)
    requester_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    requester_name: Mapped[str] = mapped_column(String(255), nullable=False)
    requester_position: Mapped[str] = mapped_column(String(255), nullable=False)
    requester_department: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    requester_email: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="Pending", index=True)
    current_step: Mapped[int] = mapped_column(Integer, default=1)
    total_steps: Mapped[int] = mapped_column(Integer, default=2)
    total_amount: Mapped[float] = mapped_column(Float, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index('idx_prs_date_seq', 'pr_date', 'pr_seq'),
        Index('idx_prs_status_step', 'status', 'current_step'),
        Index('idx_prs_status_created_at', 'status', 'created_at'),
    )


class PRItem(Base):
    """Purchase request items - at most five per request"""
    __tablename__ = "pr_items"

    id: Mapped[str] = mapped_column(String(80), primary_key=True)
    pr_id: Mapped[str] = mapped_column(String(36), ForeignKey("purchase_requests.id", ondelete="CASCADE"), nullable=False, index=True)
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit: Mapped[str] = mapped_column(String(50), default="pieces")
    estimated_price: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    priority: Mapped[str] = mapped_column(String(20), default="Medium")
    image: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    item_index: Mapped[int] = mapped_column(Integer, default=0)  # Order in the request


class Approval(Base):
    """Approval decisions - one row per decided step"""
    __tablename__ = "pr_approvals"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid_lib.uuid4()))
    pr_id: Mapped[str] = mapped_column(String(36), ForeignKey("purchase_requests.id", ondelete="CASCADE"), nullable=False, index=True)
    step: Mapped[int] = mapped_column(Integer, nullable=False)
    approver_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    approver_name: Mapped[str] = mapped_column(String(255), nullable=False)
    decision: Mapped[str] = mapped_column(String(20), nullable=False)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    decided_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class AuditLog(Base):
    """Audit logs - append-only history of each purchase request"""
    __tablename__ = "pr_audit_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid_lib.uuid4()))
    pr_id: Mapped[str] = mapped_column(String(36), ForeignKey("purchase_requests.id", ondelete="CASCADE"), nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)


# ==================== NOTIFICATION MODEL ====================

class Notification(Base):
    """Notifications - in-app messages about purchase request changes"""
    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid_lib.uuid4()))
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    pr_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    pr_number: Mapped[str] = mapped_column(String(50), nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index('idx_notifications_user_created_at', 'user_id', 'created_at'),
    )
