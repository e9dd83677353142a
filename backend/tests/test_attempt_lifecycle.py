from datetime import timedelta

import pytest

from assessment_engine.core.errors import ConflictError, ForbiddenError, InvalidStateError, NotFoundError
from assessment_engine.core.randomness import SeededRandomSource
from assessment_engine.services.answer_evaluator import SubmittedAnswer
from assessment_engine.services.checkpoint_codec import EnvelopeSnapshot
from assessment_engine.services.notification_service import CORRECTION_REQUESTED, SIMULATION_COMPLETED

from tests.fakes import NOW, Harness, choice_question, make_simulation, make_student, open_question


HOUR = timedelta(hours=1)


def _setup(harness: Harness, **simulation_overrides):
    student = harness.students.add(make_student())
    questions = [choice_question(subject='anatomy'), choice_question(subject='anatomy'), open_question('membrane')]
    simulation = harness.questions.add(make_simulation(**simulation_overrides), questions)
    return student, simulation, questions


def test_start_creates_in_progress_attempt(harness: Harness) -> None:
    student, simulation, questions = _setup(harness)

    started = harness.attempts().start(student, simulation.id)

    assert not started.resumed
    assert isinstance(started.snapshot, EnvelopeSnapshot)
    result = started.result
    assert result.status == 'in_progress'
    assert result.scope_key == 'public'
    assert result.started_at == NOW
    assert result.question_order == [str(item.question_id) for item in questions]
    assert harness.students.locked == [student.id]


def test_start_resumes_existing_attempt_with_checkpoint(harness: Harness) -> None:
    student, simulation, questions = _setup(harness)
    machine = harness.attempts()
    first = machine.start(student, simulation.id)
    answer = SubmittedAnswer(question_id=questions[0].question_id, answer_id=questions[0].option_ids[1])
    machine.checkpoint(student, first.result.id, [answer], 95, section_times={'0': 95}, current_section=0)

    resumed = machine.start(student, simulation.id)

    assert resumed.resumed
    assert resumed.result.id == first.result.id
    assert resumed.snapshot.answers == [answer]
    assert resumed.result.duration_seconds == 95
    assert len(harness.results.results) == 1


def test_resume_reads_legacy_checkpoint_shape(harness: Harness) -> None:
    student, simulation, questions = _setup(harness)
    machine = harness.attempts()
    started = machine.start(student, simulation.id)
    answer = SubmittedAnswer(question_id=questions[1].question_id, answer_id=questions[1].option_ids[0])
    started.result.checkpoint_data = [answer.to_dict()]

    resumed = machine.start(student, simulation.id)

    assert resumed.snapshot.answers == [answer]


@pytest.mark.parametrize('stored', [{'version': 9, 'answers': []}, 'garbage'])
def test_unreadable_checkpoint_is_an_invalid_state(harness: Harness, stored) -> None:
    student, simulation, _ = _setup(harness)
    machine = harness.attempts()
    started = machine.start(student, simulation.id)
    started.result.checkpoint_data = stored

    with pytest.raises(InvalidStateError) as resume_error:
        machine.start(student, simulation.id)
    with pytest.raises(InvalidStateError) as submit_error:
        machine.submit(student, started.result.id, None)

    assert resume_error.value.code == submit_error.value.code == 'checkpoint_unreadable'
    assert started.result.status == 'in_progress'


def test_unpublished_simulation_is_not_found(harness: Harness) -> None:
    student, simulation, _ = _setup(harness, status='draft')
    with pytest.raises(NotFoundError):
        harness.attempts().start(student, simulation.id)


def test_retry_gate_blocks_second_attempt(harness: Harness) -> None:
    student, simulation, _ = _setup(harness)
    machine = harness.attempts()
    started = machine.start(student, simulation.id)
    machine.submit(student, started.result.id, [], 300)

    with pytest.raises(InvalidStateError) as exc_info:
        machine.start(student, simulation.id)
    assert exc_info.value.code == 'already_completed'


def test_max_attempts_for_repeatable_simulation(harness: Harness) -> None:
    student, simulation, _ = _setup(harness, is_repeatable=True, max_attempts=2)
    machine = harness.attempts()
    for _ in range(2):
        attempt = machine.start(student, simulation.id)
        machine.submit(student, attempt.result.id, [], 60)

    with pytest.raises(InvalidStateError) as exc_info:
        machine.start(student, simulation.id)
    assert exc_info.value.code == 'retry_limit_reached'


def test_attempt_limits_are_counted_per_assignment(harness: Harness) -> None:
    student, simulation, _ = _setup(harness, is_public=False)
    first = harness.assignments.assign(simulation, student=student)
    machine = harness.attempts()
    attempt = machine.start(student, simulation.id, assignment_id=first.id)
    machine.submit(student, attempt.result.id, [], 60)

    second = harness.assignments.assign(simulation, student=student)
    again = machine.start(student, simulation.id, assignment_id=second.id)

    assert again.result.scope_key == str(second.id)
    assert again.result.assignment_id == second.id


def test_window_not_started_without_room(harness: Harness) -> None:
    student, simulation, _ = _setup(harness, starts_at=NOW + HOUR, is_public=False, access_mode='room')
    harness.assignments.assign(simulation, student=student)

    with pytest.raises(InvalidStateError) as exc_info:
        harness.attempts().start(student, simulation.id)
    assert exc_info.value.code == 'window_not_started'


def test_live_room_allows_early_start(harness: Harness) -> None:
    student, simulation, _ = _setup(harness, starts_at=NOW + HOUR, is_public=False, access_mode='room')
    assignment = harness.assignments.assign(simulation, student=student)
    harness.assignments.open_room(assignment, created_at=NOW - timedelta(minutes=1))

    started = harness.attempts().start(student, simulation.id)

    assert started.result.assignment_id == assignment.id


def test_closed_assignment_blocks_start(harness: Harness) -> None:
    student, simulation, _ = _setup(harness, is_public=False)
    harness.assignments.assign(simulation, student=student, status='closed')

    with pytest.raises(ForbiddenError) as exc_info:
        harness.attempts().start(student, simulation.id)
    assert exc_info.value.code == 'assignment_closed'


def test_paper_based_simulation_cannot_be_started_online(harness: Harness) -> None:
    student, simulation, _ = _setup(harness, is_paper_based=True)
    with pytest.raises(InvalidStateError):
        harness.attempts().start(student, simulation.id)


def test_duplicate_in_progress_insert_is_conflict(harness: Harness) -> None:
    student, simulation, _ = _setup(harness)
    started = harness.attempts().start(student, simulation.id)
    # Simulate a concurrent request that missed the existing row.
    harness.results.find_in_progress = lambda *args: None

    with pytest.raises(ConflictError):
        harness.attempts().start(student, simulation.id)
    assert started.result.id in harness.results.results


def test_randomized_order_is_stored_and_reproducible(harness: Harness) -> None:
    student, simulation, questions = _setup(harness, randomize_order=True, randomize_answers=True)
    harness.random_source = SeededRandomSource(7)

    result = harness.attempts().start(student, simulation.id).result

    expected = SeededRandomSource(7)
    assert result.question_order == expected.shuffle([str(item.question_id) for item in questions])
    first = questions[0]
    assert result.option_order[str(first.question_id)] == expected.shuffle([str(item) for item in first.option_ids])
    assert sorted(result.question_order) == sorted(str(item.question_id) for item in questions)


def test_checkpoint_rejected_after_submit(harness: Harness) -> None:
    student, simulation, _ = _setup(harness)
    machine = harness.attempts()
    attempt = machine.start(student, simulation.id)
    machine.submit(student, attempt.result.id, [], 10)

    with pytest.raises(InvalidStateError) as exc_info:
        machine.checkpoint(student, attempt.result.id, [], 20)
    assert exc_info.value.code == 'attempt_already_completed'


def test_checkpoint_writes_envelope(harness: Harness) -> None:
    student, simulation, questions = _setup(harness)
    machine = harness.attempts()
    attempt = machine.start(student, simulation.id)
    answer = SubmittedAnswer(question_id=questions[2].question_id, answer_text='Cell membrane')

    result = machine.checkpoint(student, attempt.result.id, [answer], 42, section_times={'1': 42}, current_section=1)

    assert result.checkpoint_data['version'] == 2
    assert result.checkpoint_data['current_section'] == 1
    assert result.checkpoint_data['answers'] == [answer.to_dict()]


def test_other_student_cannot_touch_attempt(harness: Harness) -> None:
    student, simulation, _ = _setup(harness)
    intruder = harness.students.add(make_student('Intruder'))
    attempt = harness.attempts().start(student, simulation.id)

    with pytest.raises(ForbiddenError):
        harness.attempts().submit(intruder, attempt.result.id, [], 5)


def test_submit_scores_and_completes(harness: Harness) -> None:
    student, simulation, questions = _setup(harness, wrong_points=-0.25, staff_correction_required=True)
    machine = harness.attempts()
    attempt = machine.start(student, simulation.id)
    answers = [
        SubmittedAnswer(question_id=questions[0].question_id, answer_id=questions[0].correct_option_id, time_spent=30),
        SubmittedAnswer(question_id=questions[1].question_id, answer_id=questions[1].option_ids[2]),
        SubmittedAnswer(question_id=questions[2].question_id, answer_text='The membrane controls transport'),
    ]

    submitted = machine.submit(student, attempt.result.id, answers, 600)

    result = submitted.result
    assert result.status == 'completed'
    assert result.completed_at == NOW
    assert result.duration_seconds == 600
    assert (result.correct_answers, result.wrong_answers, result.blank_answers) == (1, 1, 0)
    assert result.pending_open_answers == 1
    assert result.total_score == pytest.approx(0.75)
    assert result.total_score == pytest.approx(sum(item['earned_points'] for item in result.answers))
    assert result.percentage_score == pytest.approx(25.0)
    assert result.checkpoint_data is None

    assert len(submitted.submissions) == 1
    submission = submitted.submissions[0]
    assert submission.question_id == questions[2].question_id
    assert submission.auto_score == pytest.approx(1.0)
    assert [event.event_type for event in harness.outbox.drain()] == [SIMULATION_COMPLETED, CORRECTION_REQUESTED]


def test_self_correction_mode_creates_no_review_items(harness: Harness) -> None:
    student, simulation, questions = _setup(harness, self_correction_enabled=True)
    machine = harness.attempts()
    attempt = machine.start(student, simulation.id)
    answers = [SubmittedAnswer(question_id=questions[2].question_id, answer_text='membrane')]

    submitted = machine.submit(student, attempt.result.id, answers, 100)

    assert submitted.submissions == []
    assert submitted.result.pending_open_answers == 1
    assert harness.results.submissions == {}


def test_submit_twice_is_rejected(harness: Harness) -> None:
    student, simulation, _ = _setup(harness)
    machine = harness.attempts()
    attempt = machine.start(student, simulation.id)
    machine.submit(student, attempt.result.id, [], 10)

    with pytest.raises(InvalidStateError) as exc_info:
        machine.submit(student, attempt.result.id, [], 10)
    assert exc_info.value.code == 'attempt_already_completed'


def test_submit_without_answers_uses_checkpoint(harness: Harness) -> None:
    student, simulation, questions = _setup(harness)
    machine = harness.attempts()
    attempt = machine.start(student, simulation.id)
    answer = SubmittedAnswer(question_id=questions[0].question_id, answer_id=questions[0].correct_option_id)
    machine.checkpoint(student, attempt.result.id, [answer], 30)
    harness.clock.now = NOW + timedelta(minutes=5)

    result = machine.submit(student, attempt.result.id, None).result

    assert result.correct_answers == 1
    assert result.duration_seconds == 300
