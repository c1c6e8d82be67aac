# -*- coding: utf-8 -*-
"""
project.py
--------------------------------------------------------------------
项目实体及项目分配：
- Project: 组织内的一个产品/系统，模块的容器。
- ProjectAssignment: 用户 -> 项目 的直接分配（只分给 QA / BA）。
用途：
- 非管理员可见的项目 = 直接分配的项目 ∪ 有模块分配的项目。
- 项目分配本身不产生执行记录，执行记录只由模块分配驱动。
"""

from extensions.database import db
from .mixins import TimestampMixin, COMMON_TABLE_ARGS
from utils.datetime_helpers import datetime_to_iso


class Project(TimestampMixin, db.Model):
    __tablename__ = "project"
    __table_args__ = (
        db.UniqueConstraint("organization_id", "name", name="uq_project_org_name"),
        COMMON_TABLE_ARGS,
    )

    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(
        db.Integer, db.ForeignKey("organization.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = db.Column(db.String(128), nullable=False)
    description = db.Column(db.Text)
    created_by = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="SET NULL"))

    organization = db.relationship("Organization", back_populates="projects")
    modules = db.relationship(
        "TestModule", back_populates="project", cascade="all, delete-orphan", passive_deletes=True
    )
    assignments = db.relationship(
        "ProjectAssignment", back_populates="project", cascade="all, delete-orphan", passive_deletes=True
    )

    def to_dict(self):
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "name": self.name,
            "description": self.description,
            "created_by": self.created_by,
            "created_at": datetime_to_iso(self.created_at),
            "updated_at": datetime_to_iso(self.updated_at),
        }


class ProjectAssignment(TimestampMixin, db.Model):
    __tablename__ = "project_assignment"
    __table_args__ = (
        db.UniqueConstraint("project_id", "user_id", name="uq_project_assignment_project_user"),
        COMMON_TABLE_ARGS,
    )
    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("project.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = db.Column(
        db.Integer, db.ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True
    )

    project = db.relationship("Project", back_populates="assignments")
    user = db.relationship(
        "User", backref=db.backref("project_assignments", cascade="all, delete-orphan", passive_deletes=True)
    )
