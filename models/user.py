# -*- coding: utf-8 -*-
"""
user.py
--------------------------------------------------------------------
用户实体。
说明：
- 每个用户属于且仅属于一个组织（organization_id）。
- 角色存放在 user_role 中间表，一个用户可以同时拥有多个角色
  （例如 QA + TESTER）。
- active 控制账号启用状态；password_version 用于让旧 token 失效。
"""

from extensions.database import db
from .mixins import TimestampMixin, COMMON_TABLE_ARGS
from constants.roles import Role


class User(TimestampMixin, db.Model):
    __tablename__ = "user"
    __table_args__ = (COMMON_TABLE_ARGS,)

    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(
        db.Integer, db.ForeignKey("organization.id", ondelete="CASCADE"), nullable=False, index=True
    )
    username = db.Column(db.String(50), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(120), unique=True)
    full_name = db.Column(db.String(100))
    active = db.Column(db.Boolean, nullable=False, default=True, server_default="1")
    password_version = db.Column(db.Integer, nullable=False, default=1, server_default="1")

    organization = db.relationship("Organization", back_populates="users")
    role_rows = db.relationship(
        "UserRole", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self):
        return f"<User id={self.id} username={self.username} roles={self.role_names}>"

    @property
    def role_names(self) -> list[str]:
        return sorted(r.role for r in self.role_rows)

    def has_role(self, *roles) -> bool:
        wanted = {r.value if isinstance(r, Role) else r for r in roles}
        return any(r.role in wanted for r in self.role_rows)

    @property
    def is_admin(self) -> bool:
        return self.has_role(Role.ADMIN)

    def to_dict(self):
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "username": self.username,
            "email": self.email,
            "full_name": self.full_name,
            "roles": self.role_names,
            "active": bool(self.active),
        }


class UserRole(db.Model):
    __tablename__ = "user_role"
    __table_args__ = (
        db.UniqueConstraint("user_id", "role", name="uq_user_role_user_role"),
        COMMON_TABLE_ARGS,
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role = db.Column(db.String(32), nullable=False)

    user = db.relationship("User", back_populates="role_rows")
