from typing import Optional, List
from sqlalchemy import select, or_
from extensions.database import db
from models.project import Project, ProjectAssignment
from models.module import TestModule, ModuleAssignment


class ProjectRepository:
    @staticmethod
    def create(organization_id: int, name: str, description: Optional[str], created_by: Optional[int]) -> Project:
        project = Project(
            organization_id=organization_id,
            name=name.strip(),
            description=description,
            created_by=created_by,
        )
        db.session.add(project)
        db.session.flush()
        return project

    @staticmethod
    def get_by_id(project_id: int) -> Optional[Project]:
        return db.session.get(Project, project_id)

    @staticmethod
    def get_by_org_and_name(organization_id: int, name: str) -> Optional[Project]:
        stmt = select(Project).where(
            Project.organization_id == organization_id,
            Project.name == name.strip(),
        )
        return db.session.execute(stmt).scalar_one_or_none()

    @staticmethod
    def list_in_organization(organization_id: int) -> List[Project]:
        stmt = (
            select(Project)
            .where(Project.organization_id == organization_id)
            .order_by(Project.name.asc(), Project.id.asc())
        )
        return db.session.execute(stmt).scalars().all()

    @staticmethod
    def list_visible_to_user(organization_id: int, user_id: int) -> List[Project]:
        """直接分配的项目 ∪ 有模块分配的项目，限定在组织内。"""
        direct = select(ProjectAssignment.project_id).where(ProjectAssignment.user_id == user_id)
        via_module = (
            select(TestModule.project_id)
            .join(ModuleAssignment, ModuleAssignment.module_id == TestModule.id)
            .where(ModuleAssignment.user_id == user_id)
        )
        stmt = (
            select(Project)
            .where(
                Project.organization_id == organization_id,
                or_(Project.id.in_(direct), Project.id.in_(via_module)),
            )
            .order_by(Project.name.asc(), Project.id.asc())
        )
        return db.session.execute(stmt).scalars().all()

    @staticmethod
    def list_directly_assigned(organization_id: int, user_id: int) -> List[Project]:
        stmt = (
            select(Project)
            .join(ProjectAssignment, ProjectAssignment.project_id == Project.id)
            .where(Project.organization_id == organization_id, ProjectAssignment.user_id == user_id)
            .order_by(Project.name.asc())
        )
        return db.session.execute(stmt).scalars().all()

    @staticmethod
    def update(project: Project, name: Optional[str] = None, description: Optional[str] = None) -> Project:
        if name is not None:
            project.name = name.strip()
        if description is not None:
            project.description = description
        db.session.flush()
        return project

    @staticmethod
    def delete(project: Project):
        db.session.delete(project)
        db.session.flush()
