from __future__ import annotations
from sqlalchemy.orm import declarative_base, Mapped, mapped_column
from sqlalchemy import String, Integer, Boolean, DateTime, func
from typing import Optional

Base = declarative_base()


class User(Base):
    __tablename__ = 'users'
    ROLE_ADMIN = 'admin'
    ROLE_BRANCH_STAFF = 'branch_staff'
    ROLE_TECHNICIAN = 'technician'
    ALL_ROLES = (ROLE_ADMIN, ROLE_BRANCH_STAFF, ROLE_TECHNICIAN)
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    email: Mapped[str] = mapped_column(String(128), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(32), nullable=False, default=ROLE_BRANCH_STAFF)
    # admins usually have no home branch and see every branch
    branch_id: Mapped[Optional[int]] = mapped_column(Integer, index=True, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def set_password(self, raw: str):
        from werkzeug.security import generate_password_hash
        self.password_hash = generate_password_hash(raw)

    def verify_password(self, raw: str) -> bool:
        from werkzeug.security import check_password_hash
        return check_password_hash(self.password_hash, raw)

__all__ = ["Base", "User"]
