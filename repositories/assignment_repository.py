from typing import List, Optional
from sqlalchemy import select
from extensions.database import db
from models.project import ProjectAssignment
from models.module import ModuleAssignment
from models.user import User


class AssignmentRepository:
    """
    两种分配关系的读写：
    - 项目分配 (project_id, user_id)
    - 模块分配 (module_id, user_id)
    每次调用都直接查库，不做任何缓存。
    """

    # ========== 项目分配 ==========
    @staticmethod
    def find_project_assignment(project_id: int, user_id: int) -> Optional[ProjectAssignment]:
        stmt = select(ProjectAssignment).where(
            ProjectAssignment.project_id == project_id,
            ProjectAssignment.user_id == user_id,
        )
        return db.session.execute(stmt).scalar_one_or_none()

    @staticmethod
    def add_project_assignment(project_id: int, user_id: int) -> ProjectAssignment:
        row = ProjectAssignment(project_id=project_id, user_id=user_id)
        db.session.add(row)
        db.session.flush()
        return row

    @staticmethod
    def list_project_users(project_id: int) -> List[User]:
        stmt = (
            select(User)
            .join(ProjectAssignment, ProjectAssignment.user_id == User.id)
            .where(ProjectAssignment.project_id == project_id)
            .order_by(User.username.asc())
        )
        return db.session.execute(stmt).scalars().all()

    # ========== 模块分配 ==========
    @staticmethod
    def find_module_assignment(module_id: int, user_id: int) -> Optional[ModuleAssignment]:
        stmt = select(ModuleAssignment).where(
            ModuleAssignment.module_id == module_id,
            ModuleAssignment.user_id == user_id,
        )
        return db.session.execute(stmt).scalar_one_or_none()

    @staticmethod
    def add_module_assignment(module_id: int, user_id: int) -> ModuleAssignment:
        row = ModuleAssignment(module_id=module_id, user_id=user_id)
        db.session.add(row)
        db.session.flush()
        return row

    @staticmethod
    def list_module_users(module_id: int) -> List[User]:
        stmt = (
            select(User)
            .join(ModuleAssignment, ModuleAssignment.user_id == User.id)
            .where(ModuleAssignment.module_id == module_id)
            .order_by(User.id.asc())
        )
        return db.session.execute(stmt).scalars().all()

    @staticmethod
    def delete(row):
        db.session.delete(row)
        db.session.flush()
