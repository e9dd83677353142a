import uuid
from datetime import timedelta

import pytest

from assessment_engine.core.errors import ForbiddenError, InvalidStateError, NotFoundError
from assessment_engine.services.access_resolver import (
    REASON_ALREADY_COMPLETED,
    REASON_ENDED,
    REASON_NOT_STARTED,
    REASON_RETRY_LIMIT,
    AccessResolver,
    check_attempt_limits,
    check_date_access,
    effective_window,
)

from tests.fakes import NOW, FakeAssignmentStore, make_simulation, make_student


HOUR = timedelta(hours=1)


def test_date_gate_blocks_before_start_without_room() -> None:
    decision = check_date_access(NOW + HOUR, None, NOW, assignment_active=True, has_active_session=False)
    assert not decision.allowed
    assert decision.reason == REASON_NOT_STARTED


def test_live_room_bypasses_start_time() -> None:
    decision = check_date_access(NOW + HOUR, None, NOW, assignment_active=True, has_active_session=True)
    assert decision.allowed


def test_active_assignment_keeps_window_open_past_end() -> None:
    assert check_date_access(None, NOW - HOUR, NOW, assignment_active=True, has_active_session=False).allowed

    closed = check_date_access(None, NOW - HOUR, NOW, assignment_active=False, has_active_session=False)
    assert closed.reason == REASON_ENDED


def test_attempt_limits() -> None:
    assert check_attempt_limits(0, has_in_progress=False, repeatable=False, max_attempts=None).allowed
    assert (
        check_attempt_limits(1, has_in_progress=False, repeatable=False, max_attempts=None).reason
        == REASON_ALREADY_COMPLETED
    )
    assert check_attempt_limits(2, has_in_progress=False, repeatable=True, max_attempts=3).allowed
    assert check_attempt_limits(3, has_in_progress=False, repeatable=True, max_attempts=3).reason == REASON_RETRY_LIMIT
    assert check_attempt_limits(3, has_in_progress=True, repeatable=True, max_attempts=3).allowed
    assert check_attempt_limits(1, has_in_progress=True, repeatable=False, max_attempts=None).allowed


def test_denied_decision_raises_invalid_state() -> None:
    decision = check_attempt_limits(1, has_in_progress=False, repeatable=False, max_attempts=None)
    with pytest.raises(InvalidStateError) as exc_info:
        decision.raise_if_denied()
    assert exc_info.value.code == REASON_ALREADY_COMPLETED
    assert exc_info.value.status_code == 400


def test_assignment_window_replaces_simulation_window() -> None:
    store = FakeAssignmentStore()
    simulation = make_simulation(starts_at=NOW - 2 * HOUR, ends_at=NOW - HOUR)
    student = make_student()

    plain = store.assign(simulation, student=student)
    override = store.assign(simulation, student=student, starts_at=NOW + HOUR)

    assert effective_window(simulation, None) == (NOW - 2 * HOUR, NOW - HOUR)
    assert effective_window(simulation, plain) == (NOW - 2 * HOUR, NOW - HOUR)
    assert effective_window(simulation, override) == (NOW + HOUR, None)


def test_resolve_prefers_active_assignment() -> None:
    store = FakeAssignmentStore()
    simulation = make_simulation(is_public=False)
    student = make_student()
    store.assign(simulation, student=student, status='closed')
    active = store.assign(simulation, student=student)

    assert AccessResolver(store).resolve_assignment(student, simulation) is active


def test_resolve_through_group_membership() -> None:
    store = FakeAssignmentStore()
    simulation = make_simulation(is_public=False)
    student = make_student()
    group_id = uuid.uuid4()
    store.groups[group_id] = {student.id}
    assignment = store.assign(simulation, group_id=group_id)

    assert AccessResolver(store).resolve_assignment(student, simulation) is assignment


def test_resolve_public_and_own_simulations_are_unscoped() -> None:
    store = FakeAssignmentStore()
    student = make_student()
    resolver = AccessResolver(store)

    assert resolver.resolve_assignment(student, make_simulation(is_public=True)) is None
    assert resolver.resolve_assignment(student, make_simulation(is_public=False, created_by=student.user_id)) is None
    with pytest.raises(ForbiddenError):
        resolver.resolve_assignment(student, make_simulation(is_public=False))


def test_resolve_explicit_assignment_checks_target() -> None:
    store = FakeAssignmentStore()
    simulation = make_simulation()
    student = make_student()
    other = store.assign(simulation, student=make_student('Someone Else'))
    resolver = AccessResolver(store)

    with pytest.raises(ForbiddenError):
        resolver.resolve_assignment(student, simulation, other.id)
    with pytest.raises(NotFoundError):
        resolver.resolve_assignment(student, simulation, uuid.uuid4())


def test_date_decision_uses_live_room_of_assignment() -> None:
    store = FakeAssignmentStore()
    simulation = make_simulation(access_mode='room')
    student = make_student()
    assignment = store.assign(simulation, student=student, starts_at=NOW + HOUR)
    resolver = AccessResolver(store, clock=lambda: NOW)

    assert resolver.date_decision(simulation, assignment).reason == REASON_NOT_STARTED
    store.open_room(assignment, created_at=NOW - timedelta(minutes=5))
    assert resolver.date_decision(simulation, assignment).allowed


def test_closed_assignment_is_forbidden() -> None:
    store = FakeAssignmentStore()
    simulation = make_simulation()
    assignment = store.assign(simulation, student=make_student(), status='closed')

    with pytest.raises(ForbiddenError) as exc_info:
        AccessResolver(store).require_open_assignment(assignment)
    assert exc_info.value.code == 'assignment_closed'
