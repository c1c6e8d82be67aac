# -*- coding: utf-8 -*-
import pytest

from extensions.database import db
from models import TestExecution
from services.assignment_service import AssignmentService
from services.execution_service import ExecutionService
from utils.exceptions import AccessDeniedError, NotFoundError, ValidationError


@pytest.fixture()
def env(factory):
    org = factory.org()
    admin = factory.user(org, "ADMIN")
    tester = factory.user(org, "TESTER")
    peer = factory.user(org, "TESTER")
    module = factory.module(factory.project(org), "Checkout")
    case = factory.case(factory.submodule(module, "Cart"), steps=3)
    AssignmentService.assign_module(factory.scope(admin), tester.id, module.id)
    execution = db.session.query(TestExecution).filter_by(user_id=tester.id).one()
    return {
        "admin": admin,
        "tester": tester,
        "peer": peer,
        "module": module,
        "case": case,
        "execution_id": execution.id,
        "scope": factory.scope(tester),
    }


def test_update_step_records_status_and_actual_result(env):
    step = env["case"].steps[1]

    execution = ExecutionService.update_step(env["scope"], env["execution_id"], step.id, "FAILED", "button greyed out")

    row = next(r for r in execution.step_results if r.test_step_id == step.id)
    assert row.status == "FAILED"
    assert row.actual_result == "button greyed out"
    assert execution.result == "PENDING"


def test_update_step_rejects_unknown_status(env):
    step = env["case"].steps[0]
    with pytest.raises(ValidationError):
        ExecutionService.update_step(env["scope"], env["execution_id"], step.id, "MAYBE")


def test_update_step_for_foreign_step_is_not_found(env, factory):
    other_case = factory.case(factory.submodule(env["module"], "Other"), steps=1)
    with pytest.raises(NotFoundError):
        ExecutionService.update_step(env["scope"], env["execution_id"], other_case.steps[0].id, "PASSED")


def test_peer_cannot_touch_someone_elses_execution(env, factory):
    with pytest.raises(AccessDeniedError):
        ExecutionService.complete(factory.scope(env["peer"]), env["execution_id"], "PASSED")


def test_org_admin_may_complete_on_behalf(env, factory):
    execution = ExecutionService.complete(factory.scope(env["admin"]), env["execution_id"], "PARTIALLY_PASSED")
    assert execution.result == "PARTIALLY_PASSED"
    assert execution.completed_by == env["admin"].id


def test_recompletion_between_terminal_results_is_allowed(env):
    ExecutionService.complete(env["scope"], env["execution_id"], "FAILED")
    execution = ExecutionService.complete(env["scope"], env["execution_id"], "PASSED")
    assert execution.result == "PASSED"

    with pytest.raises(ValidationError):
        ExecutionService.complete(env["scope"], env["execution_id"], "PENDING")
    assert db.session.get(TestExecution, env["execution_id"]).result == "PASSED"


def test_bug_report_ignored_unless_failed(env):
    execution = ExecutionService.complete(
        env["scope"], env["execution_id"], "PASSED", bug_report={"subject": "not a bug"},
    )
    assert execution.bug_report_subject is None


def test_retired_execution_is_read_only(env, factory):
    AssignmentService.unassign_module(factory.scope(env["admin"]), env["tester"].id, env["module"].id)

    with pytest.raises(ValidationError):
        ExecutionService.save_work(factory.scope(env["admin"]), env["execution_id"], "late note")


def test_list_for_org_requires_admin(env, factory):
    with pytest.raises(AccessDeniedError):
        ExecutionService.list_for_org(env["scope"])

    rows = ExecutionService.list_for_org(factory.scope(env["admin"]), user_id=env["tester"].id)
    assert [e.id for e in rows] == [env["execution_id"]]


def test_list_for_org_rejects_user_from_other_org(env, factory):
    stranger = factory.user(factory.org())
    with pytest.raises(NotFoundError):
        ExecutionService.list_for_org(factory.scope(env["admin"]), user_id=stranger.id)


def test_stored_legacy_result_reads_as_pending(env):
    execution = db.session.get(TestExecution, env["execution_id"])
    execution.overall_result = "IN_PROGRESS"
    db.session.commit()

    assert ExecutionService.get(env["scope"], env["execution_id"]).to_dict()["overall_result"] == "PENDING"


@pytest.mark.parametrize("bad", ["passed", "Blocked", " FAILED"])
def test_update_step_rejects_inexact_status(env, bad):
    step = env["case"].steps[0]
    with pytest.raises(ValidationError):
        ExecutionService.update_step(env["scope"], env["execution_id"], step.id, bad)
