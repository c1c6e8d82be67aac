# -*- coding: utf-8 -*-
"""
__init__.py
--------------------------------------------------------------------
汇总导入所有模型，使得：
- Flask-Migrate/Alembic 自动检测模型。
- 外部模块可简化引用：from models import TestCase, TestExecution
注意：
- 避免循环导入：各模型仅在这里集中 import。
"""

from .mixins import TimestampMixin, RetireMixin
from .organization import Organization
from .user import User, UserRole
from .project import Project, ProjectAssignment
from .module import TestModule, TestSubmodule, ModuleAssignment
from .test_case import TestCase, TestStep
from .execution import TestExecution, TestStepResult

__all__ = [
    "TimestampMixin", "RetireMixin",
    "Organization", "User", "UserRole",
    "Project", "ProjectAssignment",
    "TestModule", "TestSubmodule", "ModuleAssignment",
    "TestCase", "TestStep",
    "TestExecution", "TestStepResult",
]
