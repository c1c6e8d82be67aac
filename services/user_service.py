# services/user_service.py
from __future__ import annotations

import logging
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError

from constants.roles import Role, normalize_role, normalize_roles
from extensions.database import atomic
from models.user import User
from repositories.user_repository import UserRepository
from utils.exceptions import ConflictError, NotFoundError, ValidationError
from utils.password import hash_password, validate_password_policy, verify_password
from utils.permissions import PermissionScope, assert_org_admin
from utils.validators import validate_email

logger = logging.getLogger(__name__)


class UserService:

    @staticmethod
    def authenticate(username: str, password: str) -> Optional[User]:
        user = UserRepository.find_by_username(username)
        if not user or not user.active:
            return None
        if not verify_password(user.password_hash, password):
            return None
        return user

    @staticmethod
    def ensure_default_admin(app):
        """首次启动时创建默认组织与管理员。"""
        uname = app.config["ADMIN_INIT_USERNAME"]
        if UserRepository.find_by_username(uname):
            return
        with atomic("user.bootstrap_admin"):
            org_name = app.config["DEFAULT_ORGANIZATION_NAME"]
            org = UserRepository.find_organization_by_name(org_name) or UserRepository.create_organization(org_name)
            user = User(
                organization_id=org.id,
                username=uname,
                password_hash=hash_password(app.config["ADMIN_INIT_PASSWORD"]),
                email=app.config["ADMIN_INIT_EMAIL"],
                active=True,
            )
            UserRepository.add(user, [Role.ADMIN.value])
        logger.info("默认管理员已创建: %s", uname)

    @staticmethod
    def create_user(
        scope: PermissionScope,
        username: str,
        password: str,
        roles: Iterable[str] | str | None,
        email: Optional[str] = None,
        full_name: Optional[str] = None,
    ) -> User:
        assert_org_admin(scope)
        if not username or not password:
            raise ValidationError("用户名和密码必填")
        username = username.strip()
        if len(username) < 3:
            raise ValidationError("用户名长度至少 3 位")
        errs = validate_password_policy(username, password)
        if errs:
            raise ValidationError("密码不符合策略", data=errs)
        email = email.strip() if isinstance(email, str) and email.strip() else None
        if email and not validate_email(email):
            raise ValidationError("邮箱格式不正确")
        try:
            role_values = normalize_roles(roles)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

        if UserRepository.find_by_username(username):
            raise ConflictError("用户名已存在")
        if email and UserRepository.exists_email(email):
            raise ConflictError("邮箱已存在")

        user = User(
            organization_id=scope.organization_id,
            username=username,
            password_hash=hash_password(password),
            email=email,
            full_name=full_name,
        )
        try:
            with atomic("user.create"):
                UserRepository.add(user, role_values)
        except IntegrityError as exc:
            raise ConflictError("唯一性冲突") from exc
        logger.info("user created id=%s roles=%s by=%s", user.id, role_values, scope.user_id)
        return user

    @staticmethod
    def list_users(scope: PermissionScope, role: Optional[str] = None):
        if role is not None:
            try:
                role = normalize_role(role)
            except ValueError as exc:
                raise ValidationError(str(exc)) from exc
        return UserRepository.list_in_organization(scope.organization_id, role)

    @staticmethod
    def get_in_org(scope: PermissionScope, user_id) -> User:
        user = UserRepository.find_by_id(user_id) if user_id is not None else None
        if user is None or not scope.same_org(user.organization_id):
            raise NotFoundError("用户不存在")
        return user

    @staticmethod
    def delete_user(scope: PermissionScope, user_id: int):
        """删除用户，其分配关系与执行记录随之级联删除。"""
        assert_org_admin(scope)
        target = UserService.get_in_org(scope, user_id)
        if target.id == scope.user_id:
            raise ValidationError("不能删除自己")
        with atomic("user.delete"):
            UserRepository.delete(target)
        logger.info("user deleted id=%s by=%s", user_id, scope.user_id)
