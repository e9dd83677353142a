import pytest

from assessment_engine.core.errors import InvalidStateError, NotFoundError
from assessment_engine.services.answer_evaluator import SubmittedAnswer
from assessment_engine.services.grading_service import GradingQueue, Validation

from tests.fakes import NOW, Harness, choice_question, make_simulation, make_student, open_question


def _graded_attempt(harness: Harness):
    student = harness.students.add(make_student())
    choices = [choice_question(), choice_question()]
    essays = [open_question('membrane'), open_question('osmosis')]
    simulation = harness.questions.add(
        make_simulation(staff_correction_required=True, correct_points=1.0, wrong_points=-0.5, blank_points=0.0),
        choices + essays,
    )
    machine = harness.attempts()
    attempt = machine.start(student, simulation.id)
    answers = [
        SubmittedAnswer(question_id=choices[0].question_id, answer_id=choices[0].correct_option_id),
        SubmittedAnswer(question_id=choices[1].question_id, answer_id=choices[1].option_ids[1]),
        SubmittedAnswer(question_id=essays[0].question_id, answer_text='membrane transport'),
        SubmittedAnswer(question_id=essays[1].question_id, answer_text='no idea'),
    ]
    submitted = machine.submit(student, attempt.result.id, answers, 900)
    return submitted.result, submitted.submissions


def test_single_validation_keeps_result_pending_until_last(harness: Harness) -> None:
    result, submissions = _graded_attempt(harness)
    queue = GradingQueue(harness.questions, harness.results, clock=harness.clock)
    staff_id = make_student().user_id

    queue.validate(staff_id, submissions[0].id, 1.0, notes='Good')

    assert submissions[0].is_validated
    assert submissions[0].final_score == 1.0
    assert submissions[0].validated_by == staff_id
    assert submissions[0].validated_at == NOW
    assert result.pending_open_answers == 1
    assert result.reviewed_at is None
    assert result.total_score == pytest.approx(0.5)

    queue.validate(staff_id, submissions[1].id, 0.25)

    assert result.pending_open_answers == 0
    assert result.reviewed_at == NOW
    assert result.reviewed_by == staff_id
    assert (result.correct_answers, result.wrong_answers) == (2, 2)
    assert result.total_score == pytest.approx(1.0 - 0.5 + 1.0 + 0.25)
    assert result.percentage_score == pytest.approx(43.75)


def test_batch_validation_closes_review_and_recalculates(harness: Harness) -> None:
    result, submissions = _graded_attempt(harness)
    queue = GradingQueue(harness.questions, harness.results, clock=harness.clock)

    queue.validate_batch(
        make_student().user_id,
        result.id,
        [Validation(submissions[0].id, 0.5), Validation(submissions[1].id, -1.0, 'Off topic')],
    )

    assert result.pending_open_answers == 0
    assert result.reviewed_at == NOW
    assert (result.correct_answers, result.wrong_answers, result.blank_answers) == (2, 2, 0)
    assert result.total_score == pytest.approx(1.0 - 0.5 + 0.5 - 1.0)
    assert result.total_score == pytest.approx(sum(item['earned_points'] for item in result.answers))
    assert submissions[1].notes == 'Off topic'
    assert harness.results.list_pending_submissions() == []


def test_recalculation_is_idempotent(harness: Harness) -> None:
    result, submissions = _graded_attempt(harness)
    queue = GradingQueue(harness.questions, harness.results, clock=harness.clock)
    queue.validate_batch(
        make_student().user_id, result.id, [Validation(item.id, 1.0) for item in submissions]
    )
    snapshot = (result.correct_answers, result.wrong_answers, result.total_score, result.percentage_score)

    queue.recalculate(result)
    queue.recalculate(result)

    assert (result.correct_answers, result.wrong_answers, result.total_score, result.percentage_score) == snapshot
    assert snapshot[:2] == (3, 1)


def test_manual_score_out_of_range_leaves_batch_untouched(harness: Harness) -> None:
    result, submissions = _graded_attempt(harness)
    queue = GradingQueue(harness.questions, harness.results)

    with pytest.raises(InvalidStateError):
        queue.validate_batch(
            make_student().user_id,
            result.id,
            [Validation(submissions[0].id, 1.0), Validation(submissions[1].id, 1.5)],
        )
    assert not any(item.is_validated for item in submissions)
    assert result.pending_open_answers == 2


def test_batch_rejects_foreign_submissions(harness: Harness) -> None:
    result, _ = _graded_attempt(harness)
    _, other_submissions = _graded_attempt(harness)
    queue = GradingQueue(harness.questions, harness.results)

    with pytest.raises(NotFoundError):
        queue.validate_batch(make_student().user_id, result.id, [Validation(other_submissions[0].id, 1.0)])


def test_pending_listing_filters_by_simulation(harness: Harness) -> None:
    result, submissions = _graded_attempt(harness)
    _graded_attempt(harness)
    queue = GradingQueue(harness.questions, harness.results)

    assert len(queue.list_pending()) == 4
    assert {item.id for item in queue.list_pending(simulation_id=result.simulation_id)} == {
        item.id for item in submissions
    }


def test_pass_threshold_is_configurable(harness: Harness) -> None:
    result, submissions = _graded_attempt(harness)
    queue = GradingQueue(harness.questions, harness.results, pass_threshold=0.8)

    queue.validate_batch(make_student().user_id, result.id, [Validation(item.id, 0.6) for item in submissions])

    assert (result.correct_answers, result.wrong_answers) == (1, 3)
