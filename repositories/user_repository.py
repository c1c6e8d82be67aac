# repositories/user_repository.py
from __future__ import annotations
from typing import Iterable, List, Optional

from sqlalchemy import select

from models.organization import Organization
from models.user import User, UserRole
from extensions.database import db


class UserRepository:
    """
    用户与组织的仓储（数据访问）层。
    说明：
    - 不做业务规则判断，仅做纯粹的持久化读写。
    - 所有写操作不自动 commit，由上层 atomic() 事务统一提交。
    """

    @staticmethod
    def find_by_username(username: str) -> Optional[User]:
        return User.query.filter_by(username=username).first()

    @staticmethod
    def find_by_id(user_id: int) -> Optional[User]:
        return db.session.get(User, user_id)

    get_by_id = find_by_id

    @staticmethod
    def exists_email(email: str) -> bool:
        return db.session.query(User.id).filter(User.email == email).first() is not None

    @staticmethod
    def add(user: User, roles: Iterable[str]) -> User:
        for role in roles:
            user.role_rows.append(UserRole(role=role))
        db.session.add(user)
        db.session.flush()
        return user

    @staticmethod
    def list_in_organization(organization_id: int, role: Optional[str] = None) -> List[User]:
        stmt = select(User).where(User.organization_id == organization_id)
        if role:
            stmt = stmt.where(
                User.id.in_(select(UserRole.user_id).where(UserRole.role == role))
            )
        stmt = stmt.order_by(User.username.asc())
        return db.session.execute(stmt).scalars().all()

    @staticmethod
    def delete(user: User):
        db.session.delete(user)
        db.session.flush()

    # ========== 组织 ==========
    @staticmethod
    def find_organization_by_name(name: str) -> Optional[Organization]:
        return Organization.query.filter_by(name=name).first()

    @staticmethod
    def find_organization(organization_id: int) -> Optional[Organization]:
        return db.session.get(Organization, organization_id)

    @staticmethod
    def create_organization(name: str, domain: Optional[str] = None) -> Organization:
        org = Organization(name=name.strip(), domain=domain)
        db.session.add(org)
        db.session.flush()
        return org
