from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable


class Role(str, Enum):
    """
    组织内角色：
    - ADMIN: 组织管理员，可见组织内全部资源
    - QA / BA: 维护用例目录，只能看到分配给自己的项目 / 模块
    - TESTER: 仅执行分配给自己的用例
    """

    ADMIN = "ADMIN"
    QA = "QA"
    BA = "BA"
    TESTER = "TESTER"

    @classmethod
    def values(cls) -> list[str]:
        return [role.value for role in cls]


@dataclass(frozen=True)
class Capability:
    can_see_all_in_org: bool = False
    can_manage_catalog: bool = False
    can_execute_only: bool = False

    def merge(self, other: "Capability") -> "Capability":
        # 多角色用户取并集；只要有一个角色不是纯执行者，就不再是纯执行者
        return Capability(
            can_see_all_in_org=self.can_see_all_in_org or other.can_see_all_in_org,
            can_manage_catalog=self.can_manage_catalog or other.can_manage_catalog,
            can_execute_only=self.can_execute_only and other.can_execute_only,
        )


# 角色 -> 能力，权限判断只查这张表
ROLE_CAPABILITIES: dict[str, Capability] = {
    Role.ADMIN.value: Capability(can_see_all_in_org=True, can_manage_catalog=True),
    Role.QA.value: Capability(can_manage_catalog=True),
    Role.BA.value: Capability(can_manage_catalog=True),
    Role.TESTER.value: Capability(can_execute_only=True),
}

# 项目级分配只允许分给 QA / BA
PROJECT_ASSIGNABLE_ROLES: set[str] = {Role.QA.value, Role.BA.value}

ALL_ROLES: set[str] = set(Role.values())

DEFAULT_ROLE = Role.TESTER


def normalize_role(raw: str | None, default: Role = DEFAULT_ROLE) -> str:
    """
    清洗外部传入的角色值：
    - None 或空 => 默认
    - 去掉首尾空白，转大写
    - 校验是否在已注册角色中
    """
    if not raw:
        return default.value
    value = raw.strip().upper()
    if value not in ALL_ROLES:
        raise ValueError(f"非法角色: {raw}")
    return value


def normalize_roles(raw_roles: Iterable[str] | str | None) -> list[str]:
    if raw_roles is None:
        return [DEFAULT_ROLE.value]
    if isinstance(raw_roles, str):
        raw_roles = [raw_roles]
    normalized = []
    for raw in raw_roles:
        value = normalize_role(raw)
        if value not in normalized:
            normalized.append(value)
    return normalized or [DEFAULT_ROLE.value]


def capabilities_for(roles: Iterable[str]) -> Capability:
    merged = None
    for role in roles:
        cap = ROLE_CAPABILITIES.get(role)
        if cap is None:
            continue
        merged = cap if merged is None else merged.merge(cap)
    return merged or Capability()
