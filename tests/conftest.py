# -*- coding: utf-8 -*-
"""测试公共夹具：内存 SQLite 应用、假 Redis、数据工厂、token 工具。"""

import itertools
import time

import pytest

from app import create_app
from extensions.database import db
from extensions.jwt import create_token
from models import (
    ModuleAssignment,
    Organization,
    Project,
    ProjectAssignment,
    TestModule,
    TestSubmodule,
    User,
    UserRole,
)
from repositories.test_case_repository import TestCaseRepository
from utils.password import hash_password
from utils.permissions import build_permission_scope

DEFAULT_PASSWORD = "Passw0rd!"


class FakeRedis:
    """只实现 token 黑名单用到的 setex / get。"""

    def __init__(self):
        self._store = {}

    def setex(self, name, ttl, value):
        self._store[name] = (value, time.time() + ttl)

    def get(self, name):
        item = self._store.get(name)
        if item is None:
            return None
        value, expires_at = item
        if expires_at <= time.time():
            self._store.pop(name, None)
            return None
        return value


@pytest.fixture()
def fake_redis(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr("extensions.jwt.get_redis", lambda: fake)
    return fake


@pytest.fixture()
def app(fake_redis):
    """提供测试用的 Flask 应用上下文（使用内存数据库）。"""
    app = create_app("testing")
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


class Factory:
    """直接落库的数据工厂，不触发执行记录同步。"""

    _seq = itertools.count(1)

    def _n(self):
        return next(self._seq)

    def _save(self, obj):
        db.session.add(obj)
        db.session.commit()
        return obj

    def org(self, name=None):
        return self._save(Organization(name=name or f"Org-{self._n()}"))

    def user(self, org, *roles, username=None):
        user = User(
            organization_id=org.id,
            username=username or f"user{self._n()}",
            password_hash=hash_password(DEFAULT_PASSWORD),
            active=True,
        )
        for role in roles or ("TESTER",):
            user.role_rows.append(UserRole(role=role))
        return self._save(user)

    def project(self, org, name=None):
        return self._save(Project(organization_id=org.id, name=name or f"Project-{self._n()}"))

    def module(self, project, name=None):
        return self._save(TestModule(project_id=project.id, name=name or f"Module-{self._n()}"))

    def submodule(self, module, name=None):
        return self._save(TestSubmodule(module_id=module.id, name=name or f"Sub-{self._n()}"))

    def case(self, submodule, steps=2, code=None, title=None):
        case = TestCaseRepository.create(
            submodule_id=submodule.id,
            case_code=code or f"TC-{self._n()}",
            title=title or "case",
            description=None,
            preconditions=None,
            expected_result=None,
            priority="P2",
            tags=[],
            created_by=None,
            steps=[{"action": f"step {i}", "expected_result": f"ok {i}"} for i in range(1, steps + 1)],
        )
        db.session.commit()
        return case

    def assign_module(self, user, module):
        return self._save(ModuleAssignment(user_id=user.id, module_id=module.id))

    def assign_project(self, user, project):
        return self._save(ProjectAssignment(user_id=user.id, project_id=project.id))

    @staticmethod
    def scope(user):
        return build_permission_scope(db.session.get(User, user.id))

    @staticmethod
    def token(user):
        user = db.session.get(User, user.id)
        return create_token(user.id, user.organization_id, user.role_names, user.password_version)

    def headers(self, user):
        return {"Authorization": f"Bearer {self.token(user)}"}


@pytest.fixture()
def factory(app):
    return Factory()
