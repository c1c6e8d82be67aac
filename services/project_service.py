import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError

from extensions.database import atomic
from models.project import Project
from repositories.project_repository import ProjectRepository
from services.access_resolver import AccessResolver
from utils.exceptions import ConflictError
from utils.permissions import PermissionScope, assert_org_admin
from utils.validators import optional_text, require_text

logger = logging.getLogger(__name__)


class ProjectService:

    @staticmethod
    def create(scope: PermissionScope, name: str, description: Optional[str] = None) -> Project:
        assert_org_admin(scope)
        name = require_text(name, "项目名称")
        description = optional_text(description, "项目描述")
        if ProjectRepository.get_by_org_and_name(scope.organization_id, name):
            raise ConflictError("项目名称已存在")
        try:
            with atomic("project.create"):
                project = ProjectRepository.create(
                    organization_id=scope.organization_id,
                    name=name,
                    description=description,
                    created_by=scope.user_id,
                )
        except IntegrityError as exc:
            raise ConflictError("创建项目失败：唯一约束冲突") from exc
        logger.info("project created id=%s org=%s", project.id, scope.organization_id)
        return project

    @staticmethod
    def list(scope: PermissionScope) -> List[Project]:
        return AccessResolver.visible_projects(scope)

    @staticmethod
    def list_assigned_to_me(scope: PermissionScope) -> List[Project]:
        return ProjectRepository.list_directly_assigned(scope.organization_id, scope.user_id)

    @staticmethod
    def get(scope: PermissionScope, project_id: int) -> Project:
        return AccessResolver.require_project(scope, project_id)

    @staticmethod
    def update(
        scope: PermissionScope,
        project_id: int,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Project:
        proj = AccessResolver.require_project(scope, project_id)
        assert_org_admin(scope)
        if name is not None:
            name = require_text(name, "项目名称")
            existing = ProjectRepository.get_by_org_and_name(scope.organization_id, name)
            if existing and existing.id != proj.id:
                raise ConflictError("项目名称已存在")
        description = optional_text(description, "项目描述")
        try:
            with atomic("project.update"):
                ProjectRepository.update(proj, name=name, description=description)
        except IntegrityError as exc:
            raise ConflictError("更新失败：唯一约束冲突") from exc
        return proj

    @staticmethod
    def delete(scope: PermissionScope, project_id: int):
        """删除项目：模块、子模块、用例、分配与执行记录全部级联删除。"""
        proj = AccessResolver.require_project(scope, project_id)
        assert_org_admin(scope)
        with atomic("project.delete"):
            ProjectRepository.delete(proj)
        logger.info("project deleted id=%s by=%s", project_id, scope.user_id)
