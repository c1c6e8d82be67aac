import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError

from extensions.database import atomic
from models.module import TestModule, TestSubmodule
from repositories.module_repository import ModuleRepository
from services.access_resolver import AccessResolver
from utils.exceptions import ConflictError
from utils.permissions import PermissionScope, assert_catalog_manager, assert_org_admin
from utils.validators import optional_text, require_text

logger = logging.getLogger(__name__)


class ModuleService:
    """
    模块 / 子模块维护：
    - 模块的创建、删除只允许组织管理员。
    - 模块、子模块的修改以及子模块的创建、删除需要用例维护能力，
      且模块对调用者可见。
    """

    @staticmethod
    def create(scope: PermissionScope, project_id: int, name: str, description: Optional[str] = None) -> TestModule:
        project = AccessResolver.require_project(scope, project_id)
        assert_org_admin(scope)
        name = require_text(name, "模块名称")
        if ModuleRepository.get_by_project_and_name(project.id, name):
            raise ConflictError("模块名称已存在")
        try:
            with atomic("module.create"):
                module = ModuleRepository.create(project.id, name, optional_text(description, "模块描述"))
        except IntegrityError as exc:
            raise ConflictError("创建模块失败：唯一约束冲突") from exc
        logger.info("module created id=%s project=%s", module.id, project.id)
        return module

    @staticmethod
    def list(scope: PermissionScope, project_id: Optional[int] = None) -> List[TestModule]:
        if project_id is not None:
            AccessResolver.require_project(scope, project_id)
        return AccessResolver.visible_modules(scope, project_id)

    @staticmethod
    def get(scope: PermissionScope, module_id: int) -> TestModule:
        return AccessResolver.require_module(scope, module_id)

    @staticmethod
    def update(scope: PermissionScope, module_id: int, name: Optional[str] = None,
               description: Optional[str] = None) -> TestModule:
        module = AccessResolver.require_module(scope, module_id)
        assert_catalog_manager(scope)
        if name is not None:
            name = require_text(name, "模块名称")
            existing = ModuleRepository.get_by_project_and_name(module.project_id, name)
            if existing and existing.id != module.id:
                raise ConflictError("模块名称已存在")
        try:
            with atomic("module.update"):
                ModuleRepository.update(module, name=name, description=optional_text(description, "模块描述"))
        except IntegrityError as exc:
            raise ConflictError("更新失败：唯一约束冲突") from exc
        return module

    @staticmethod
    def delete(scope: PermissionScope, module_id: int):
        module = AccessResolver.require_module(scope, module_id)
        assert_org_admin(scope)
        with atomic("module.delete"):
            ModuleRepository.delete(module)
        logger.info("module deleted id=%s by=%s", module_id, scope.user_id)

    # ---------- 子模块 ----------
    @staticmethod
    def create_submodule(scope: PermissionScope, module_id: int, name: str,
                         description: Optional[str] = None) -> TestSubmodule:
        module = AccessResolver.require_module(scope, module_id)
        assert_catalog_manager(scope)
        name = require_text(name, "子模块名称")
        if ModuleRepository.get_submodule_by_name(module.id, name):
            raise ConflictError("子模块名称已存在")
        try:
            with atomic("submodule.create"):
                sub = ModuleRepository.create_submodule(module.id, name, optional_text(description, "子模块描述"))
        except IntegrityError as exc:
            raise ConflictError("创建子模块失败：唯一约束冲突") from exc
        return sub

    @staticmethod
    def list_submodules(scope: PermissionScope, module_id: int) -> List[TestSubmodule]:
        module = AccessResolver.require_module(scope, module_id)
        return ModuleRepository.list_submodules(module.id)

    @staticmethod
    def get_submodule(scope: PermissionScope, submodule_id: int) -> TestSubmodule:
        return AccessResolver.require_submodule(scope, submodule_id)

    @staticmethod
    def update_submodule(scope: PermissionScope, submodule_id: int, name: Optional[str] = None,
                         description: Optional[str] = None) -> TestSubmodule:
        sub = AccessResolver.require_submodule(scope, submodule_id)
        assert_catalog_manager(scope)
        if name is not None:
            name = require_text(name, "子模块名称")
            existing = ModuleRepository.get_submodule_by_name(sub.module_id, name)
            if existing and existing.id != sub.id:
                raise ConflictError("子模块名称已存在")
        try:
            with atomic("submodule.update"):
                ModuleRepository.update_submodule(sub, name=name, description=optional_text(description, "子模块描述"))
        except IntegrityError as exc:
            raise ConflictError("更新失败：唯一约束冲突") from exc
        return sub

    @staticmethod
    def delete_submodule(scope: PermissionScope, submodule_id: int):
        sub = AccessResolver.require_submodule(scope, submodule_id)
        assert_catalog_manager(scope)
        with atomic("submodule.delete"):
            ModuleRepository.delete_submodule(sub)
