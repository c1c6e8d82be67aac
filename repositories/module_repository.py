from typing import Optional, List
from sqlalchemy import select
from extensions.database import db
from models.project import Project
from models.module import TestModule, TestSubmodule, ModuleAssignment


class ModuleRepository:
    """模块与子模块的持久化读写，不做权限判断。"""

    @staticmethod
    def create(project_id: int, name: str, description: Optional[str]) -> TestModule:
        module = TestModule(project_id=project_id, name=name.strip(), description=description)
        db.session.add(module)
        db.session.flush()
        return module

    @staticmethod
    def get_by_id(module_id: int) -> Optional[TestModule]:
        return db.session.get(TestModule, module_id)

    @staticmethod
    def get_by_project_and_name(project_id: int, name: str) -> Optional[TestModule]:
        stmt = select(TestModule).where(
            TestModule.project_id == project_id,
            TestModule.name == name.strip(),
        )
        return db.session.execute(stmt).scalar_one_or_none()

    @staticmethod
    def list_in_organization(organization_id: int, project_id: Optional[int] = None) -> List[TestModule]:
        stmt = (
            select(TestModule)
            .join(Project, Project.id == TestModule.project_id)
            .where(Project.organization_id == organization_id)
        )
        if project_id is not None:
            stmt = stmt.where(TestModule.project_id == project_id)
        stmt = stmt.order_by(TestModule.name.asc(), TestModule.id.asc())
        return db.session.execute(stmt).scalars().all()

    @staticmethod
    def list_assigned_to_user(organization_id: int, user_id: int, project_id: Optional[int] = None) -> List[TestModule]:
        stmt = (
            select(TestModule)
            .join(Project, Project.id == TestModule.project_id)
            .join(ModuleAssignment, ModuleAssignment.module_id == TestModule.id)
            .where(Project.organization_id == organization_id, ModuleAssignment.user_id == user_id)
        )
        if project_id is not None:
            stmt = stmt.where(TestModule.project_id == project_id)
        stmt = stmt.order_by(TestModule.name.asc(), TestModule.id.asc())
        return db.session.execute(stmt).scalars().all()

    @staticmethod
    def update(module: TestModule, name: Optional[str] = None, description: Optional[str] = None) -> TestModule:
        if name is not None:
            module.name = name.strip()
        if description is not None:
            module.description = description
        db.session.flush()
        return module

    @staticmethod
    def delete(module: TestModule):
        db.session.delete(module)
        db.session.flush()

    # ========== 子模块 ==========
    @staticmethod
    def create_submodule(module_id: int, name: str, description: Optional[str]) -> TestSubmodule:
        sub = TestSubmodule(module_id=module_id, name=name.strip(), description=description)
        db.session.add(sub)
        db.session.flush()
        return sub

    @staticmethod
    def get_submodule(submodule_id: int) -> Optional[TestSubmodule]:
        return db.session.get(TestSubmodule, submodule_id)

    @staticmethod
    def get_submodule_by_name(module_id: int, name: str) -> Optional[TestSubmodule]:
        stmt = select(TestSubmodule).where(
            TestSubmodule.module_id == module_id,
            TestSubmodule.name == name.strip(),
        )
        return db.session.execute(stmt).scalar_one_or_none()

    @staticmethod
    def list_submodules(module_id: int) -> List[TestSubmodule]:
        stmt = (
            select(TestSubmodule)
            .where(TestSubmodule.module_id == module_id)
            .order_by(TestSubmodule.name.asc(), TestSubmodule.id.asc())
        )
        return db.session.execute(stmt).scalars().all()

    @staticmethod
    def update_submodule(sub: TestSubmodule, name: Optional[str] = None, description: Optional[str] = None):
        if name is not None:
            sub.name = name.strip()
        if description is not None:
            sub.description = description
        db.session.flush()
        return sub

    @staticmethod
    def delete_submodule(sub: TestSubmodule):
        db.session.delete(sub)
        db.session.flush()
