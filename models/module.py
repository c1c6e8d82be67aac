# -*- coding: utf-8 -*-
"""
module.py
--------------------------------------------------------------------
测试模块、子模块及模块分配：
- TestModule: 项目下的功能模块，模块分配的粒度。
- TestSubmodule: 模块下的分组，用例挂在子模块上。
- ModuleAssignment: 用户 -> 模块 的分配，执行记录的唯一来源。
  (module_id, user_id) 唯一，重复分配是幂等的空操作。
"""

from extensions.database import db
from .mixins import TimestampMixin, COMMON_TABLE_ARGS
from utils.datetime_helpers import datetime_to_iso


class TestModule(TimestampMixin, db.Model):
    __tablename__ = "test_module"
    __table_args__ = (
        db.UniqueConstraint("project_id", "name", name="uq_test_module_project_name"),
        COMMON_TABLE_ARGS,
    )
    __test__ = False  # pytest 不要把它当成测试类

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("project.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = db.Column(db.String(128), nullable=False)
    description = db.Column(db.Text)

    project = db.relationship("Project", back_populates="modules")
    submodules = db.relationship(
        "TestSubmodule", back_populates="module", cascade="all, delete-orphan", passive_deletes=True
    )
    assignments = db.relationship(
        "ModuleAssignment", back_populates="module", cascade="all, delete-orphan", passive_deletes=True
    )

    @property
    def organization_id(self):
        return self.project.organization_id if self.project else None

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "name": self.name,
            "description": self.description,
            "created_at": datetime_to_iso(self.created_at),
            "updated_at": datetime_to_iso(self.updated_at),
        }


class TestSubmodule(TimestampMixin, db.Model):
    __tablename__ = "test_submodule"
    __table_args__ = (
        db.UniqueConstraint("module_id", "name", name="uq_test_submodule_module_name"),
        COMMON_TABLE_ARGS,
    )
    __test__ = False

    id = db.Column(db.Integer, primary_key=True)
    module_id = db.Column(
        db.Integer, db.ForeignKey("test_module.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = db.Column(db.String(128), nullable=False)
    description = db.Column(db.Text)

    module = db.relationship("TestModule", back_populates="submodules")
    test_cases = db.relationship(
        "TestCase", back_populates="submodule", cascade="all, delete-orphan", passive_deletes=True
    )

    @property
    def organization_id(self):
        return self.module.organization_id if self.module else None

    def to_dict(self):
        return {
            "id": self.id,
            "module_id": self.module_id,
            "name": self.name,
            "description": self.description,
        }


class ModuleAssignment(TimestampMixin, db.Model):
    __tablename__ = "module_assignment"
    __table_args__ = (
        db.UniqueConstraint("module_id", "user_id", name="uq_module_assignment_module_user"),
        COMMON_TABLE_ARGS,
    )

    id = db.Column(db.Integer, primary_key=True)
    module_id = db.Column(
        db.Integer, db.ForeignKey("test_module.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = db.Column(
        db.Integer, db.ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True
    )

    module = db.relationship("TestModule", back_populates="assignments")
    user = db.relationship(
        "User", backref=db.backref("module_assignments", cascade="all, delete-orphan", passive_deletes=True)
    )

    def to_dict(self):
        return {
            "id": self.id,
            "module_id": self.module_id,
            "user_id": self.user_id,
            "assigned_at": datetime_to_iso(self.created_at),
        }
