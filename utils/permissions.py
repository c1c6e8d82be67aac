from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet

from flask import g

from constants.roles import Capability, Role, capabilities_for
from utils.exceptions import AccessDeniedError, BizError


@dataclass(frozen=True)
class PermissionScope:
    """
    一次请求内的调用者身份：
      - user_id / organization_id: 所有可见性判断的起点
      - roles: 角色值集合
      - capability: 由角色能力表合并得到，只在构建时计算一次
    """
    user_id: int
    organization_id: int
    roles: FrozenSet[str] = field(default_factory=frozenset)
    capability: Capability = field(default_factory=Capability)

    def has_role(self, *roles: Role | str) -> bool:
        wanted = {r.value if isinstance(r, Role) else r for r in roles}
        return bool(self.roles & wanted)

    @property
    def sees_all_in_org(self) -> bool:
        return self.capability.can_see_all_in_org

    @property
    def can_manage_catalog(self) -> bool:
        return self.capability.can_manage_catalog

    def same_org(self, organization_id) -> bool:
        return organization_id is not None and organization_id == self.organization_id


def get_permission_scope(default=None) -> PermissionScope | None:
    return getattr(g, "permission_scope", default)


def build_permission_scope(user) -> PermissionScope:
    if not user:
        raise BizError("未登录", 401)
    roles = frozenset(user.role_names)
    return PermissionScope(
        user_id=user.id,
        organization_id=user.organization_id,
        roles=roles,
        capability=capabilities_for(roles),
    )


def assert_org_admin(scope: PermissionScope):
    if not scope.sees_all_in_org:
        raise AccessDeniedError("需要组织管理员权限")


def assert_catalog_manager(scope: PermissionScope):
    if not scope.can_manage_catalog:
        raise AccessDeniedError("需要用例维护权限")
