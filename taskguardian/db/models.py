"""
Task Guardian Models — SQLAlchemy models for users and tasks.

Tables:
1. users — credentials and role (ADMIN / MANAGER / REGULAR)
2. tasks — work items, owned by their creator, optionally assigned once
"""

from __future__ import annotations

from typing import Any, Dict

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, String

from taskguardian.db.base import Base, TimestampMixin, new_id


def _iso(value) -> Any:
    return value.isoformat() if value is not None else None


# ---------------------------------------------------------------------------
# 1. Users
# ---------------------------------------------------------------------------

class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(String(24), primary_key=True, default=new_id)
    username = Column(String(50), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, index=True)

    __table_args__ = (
        CheckConstraint(
            "role IN ('ADMIN', 'MANAGER', 'REGULAR')",
            name="ck_users_role",
        ),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Public representation — never includes the password hash."""
        return {
            "id": self.id,
            "username": self.username,
            "role": self.role,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}', role='{self.role}')>"


# ---------------------------------------------------------------------------
# 2. Tasks
# ---------------------------------------------------------------------------

class Task(Base, TimestampMixin):
    __tablename__ = "tasks"

    id = Column(String(24), primary_key=True, default=new_id)
    title = Column(String(50), nullable=False)
    description = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, default="PENDING")
    created_by = Column(String(24), ForeignKey("users.id"), nullable=False)
    assigned_to = Column(String(24), ForeignKey("users.id"), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'INPROGRESS', 'COMPLETED')",
            name="ck_tasks_status",
        ),
        Index("idx_tasks_assigned_to", "assigned_to"),
        Index("idx_tasks_created_by", "created_by"),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "createdBy": self.created_by,
            "assignedTo": self.assigned_to,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<Task(id={self.id}, status='{self.status}', assigned_to={self.assigned_to})>"
