# -*- coding: utf-8 -*-
"""可见性判定：管理员全组织可见、非管理员按分配可见、跨组织一律不可达。"""

import pytest

from extensions.database import atomic
from services.access_resolver import AccessResolver
from services.execution_reconciler import ExecutionReconciler
from utils.exceptions import AccessDeniedError, NotFoundError


@pytest.fixture()
def two_orgs(factory):
    org_a, org_b = factory.org("Acme"), factory.org("Globex")
    env = {"org_a": org_a, "org_b": org_b}
    for key, org in (("a", org_a), ("b", org_b)):
        project = factory.project(org, "Shop")
        alpha = factory.module(project, "Alpha")
        beta = factory.module(project, "Beta")
        env[f"admin_{key}"] = factory.user(org, "ADMIN")
        env[f"project_{key}"] = project
        env[f"alpha_{key}"] = alpha
        env[f"beta_{key}"] = beta
        env[f"alpha_sub_{key}"] = factory.submodule(alpha, "Main")
        env[f"beta_sub_{key}"] = factory.submodule(beta, "Main")
    return env


def test_admin_sees_every_module_in_own_org_without_assignments(factory, two_orgs):
    scope = factory.scope(two_orgs["admin_a"])

    modules = AccessResolver.visible_modules(scope)

    assert {m.id for m in modules} == {two_orgs["alpha_a"].id, two_orgs["beta_a"].id}
    assert [p.id for p in AccessResolver.visible_projects(scope)] == [two_orgs["project_a"].id]


def test_admin_gets_no_auto_provisioned_executions(factory, two_orgs):
    case = factory.case(two_orgs["alpha_sub_a"])
    with atomic("test.reconcile"):
        ExecutionReconciler.on_test_case_created(case)

    scope = factory.scope(two_orgs["admin_a"])
    assert AccessResolver.visible_executions(scope) == []


def test_project_visible_via_module_assignment_only(factory, two_orgs):
    tester = factory.user(two_orgs["org_a"], "TESTER")
    factory.assign_module(tester, two_orgs["alpha_a"])
    scope = factory.scope(tester)

    assert [p.id for p in AccessResolver.visible_projects(scope)] == [two_orgs["project_a"].id]
    assert [m.id for m in AccessResolver.visible_modules(scope)] == [two_orgs["alpha_a"].id]
    assert AccessResolver.can_access_module(scope, two_orgs["beta_a"]) is False


def test_direct_project_assignment_does_not_expose_modules(factory, two_orgs):
    qa = factory.user(two_orgs["org_a"], "QA")
    factory.assign_project(qa, two_orgs["project_a"])
    scope = factory.scope(qa)

    assert [p.id for p in AccessResolver.visible_projects(scope)] == [two_orgs["project_a"].id]
    assert AccessResolver.visible_modules(scope) == []


def test_test_case_access_follows_module(factory, two_orgs):
    tester = factory.user(two_orgs["org_a"])
    factory.assign_module(tester, two_orgs["alpha_a"])
    visible = factory.case(two_orgs["alpha_sub_a"])
    hidden = factory.case(two_orgs["beta_sub_a"])
    scope = factory.scope(tester)

    assert AccessResolver.can_access_test_case(scope, visible) is True
    assert AccessResolver.can_access_test_case(scope, hidden) is False
    assert [c.id for c in AccessResolver.visible_test_cases(scope)] == [visible.id]
    with pytest.raises(AccessDeniedError):
        AccessResolver.require_test_case(scope, hidden.id)


@pytest.mark.parametrize("role", ["ADMIN", "QA", "BA", "TESTER"])
def test_cross_org_entities_are_never_reachable(factory, two_orgs, role):
    user = factory.user(two_orgs["org_a"], role)
    # 即使错误地存在跨组织分配，也不能越界
    factory.assign_module(user, two_orgs["alpha_b"])
    foreign_case = factory.case(two_orgs["alpha_sub_b"])
    scope = factory.scope(user)

    assert all(p.organization_id == two_orgs["org_a"].id for p in AccessResolver.visible_projects(scope))
    assert all(m.organization_id == two_orgs["org_a"].id for m in AccessResolver.visible_modules(scope))
    assert foreign_case.id not in [c.id for c in AccessResolver.visible_test_cases(scope)]
    with pytest.raises(NotFoundError):
        AccessResolver.require_project(scope, two_orgs["project_b"].id)
    with pytest.raises(NotFoundError):
        AccessResolver.require_module(scope, two_orgs["alpha_b"].id)
    with pytest.raises(NotFoundError):
        AccessResolver.require_test_case(scope, foreign_case.id)


def test_execution_access_owner_or_org_admin(factory, two_orgs):
    tester = factory.user(two_orgs["org_a"])
    other = factory.user(two_orgs["org_a"])
    factory.assign_module(tester, two_orgs["alpha_a"])
    case = factory.case(two_orgs["alpha_sub_a"])
    with atomic("test.reconcile"):
        ExecutionReconciler.on_test_case_created(case)
    execution = AccessResolver.visible_executions(factory.scope(tester))[0]

    assert AccessResolver.can_access_execution(factory.scope(tester), execution) is True
    assert AccessResolver.can_access_execution(factory.scope(two_orgs["admin_a"]), execution) is True
    assert AccessResolver.can_access_execution(factory.scope(other), execution) is False
    assert AccessResolver.can_access_execution(factory.scope(two_orgs["admin_b"]), execution) is False
    with pytest.raises(AccessDeniedError):
        AccessResolver.require_execution(factory.scope(other), execution.id)
    with pytest.raises(NotFoundError):
        AccessResolver.require_execution(factory.scope(two_orgs["admin_b"]), execution.id)


def test_missing_entities_raise_not_found(factory, two_orgs):
    scope = factory.scope(two_orgs["admin_a"])
    with pytest.raises(NotFoundError):
        AccessResolver.require_project(scope, 9999)
    with pytest.raises(NotFoundError):
        AccessResolver.require_execution(scope, 9999)


def test_resolver_rereads_assignments_on_every_call(factory, two_orgs):
    tester = factory.user(two_orgs["org_a"])
    scope = factory.scope(tester)
    assert AccessResolver.visible_modules(scope) == []

    factory.assign_module(tester, two_orgs["beta_a"])

    assert [m.id for m in AccessResolver.visible_modules(scope)] == [two_orgs["beta_a"].id]
