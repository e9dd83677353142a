import uuid

import pytest

from assessment_engine.services.answer_evaluator import SubmittedAnswer
from assessment_engine.services.checkpoint_codec import (
    SNAPSHOT_VERSION,
    EnvelopeSnapshot,
    LegacySnapshot,
    SnapshotDecodeError,
    decode_snapshot,
    encode_snapshot,
)


def _answers() -> list[SubmittedAnswer]:
    return [
        SubmittedAnswer(question_id=uuid.uuid4(), answer_id=uuid.uuid4(), time_spent=12),
        SubmittedAnswer(question_id=uuid.uuid4(), answer_text='Osmosis', time_spent=40, flagged=True),
    ]


def test_legacy_list_and_envelope_decode_to_same_answers() -> None:
    answers = _answers()
    legacy_raw = [answer.to_dict() for answer in answers]
    envelope_raw = encode_snapshot(answers, section_times={'0': 52}, current_section=1)

    legacy = decode_snapshot(legacy_raw)
    envelope = decode_snapshot(envelope_raw)

    assert isinstance(legacy, LegacySnapshot)
    assert isinstance(envelope, EnvelopeSnapshot)
    assert legacy.answers == envelope.answers == answers
    assert envelope.section_times == {'0': 52}
    assert envelope.current_section == 1


def test_encode_always_writes_envelope() -> None:
    raw = encode_snapshot([])
    assert raw == {'version': SNAPSHOT_VERSION, 'answers': [], 'section_times': {}, 'current_section': 0}


def test_missing_snapshot_is_empty_envelope() -> None:
    snapshot = decode_snapshot(None)
    assert isinstance(snapshot, EnvelopeSnapshot)
    assert snapshot.answers == []


@pytest.mark.parametrize(
    'raw',
    [
        'not a snapshot',
        {'section_times': {}},
        {'answers': 'oops'},
        [{'answer_id': str(uuid.uuid4())}],
        {'answers': [], 'section_times': {}},
        {'version': SNAPSHOT_VERSION, 'answers': [], 'section_times': ['0']},
        {'version': SNAPSHOT_VERSION, 'answers': [], 'current_section': 'second'},
        {'version': SNAPSHOT_VERSION},
    ],
)
def test_malformed_snapshots_are_rejected(raw) -> None:
    with pytest.raises(SnapshotDecodeError):
        decode_snapshot(raw)


@pytest.mark.parametrize('version', [1, 3, '2'])
def test_unknown_envelope_version_is_rejected(version) -> None:
    raw = encode_snapshot(_answers())
    raw['version'] = version

    with pytest.raises(SnapshotDecodeError):
        decode_snapshot(raw)


def test_envelope_shape_is_chosen_by_version_key() -> None:
    answers = _answers()
    raw = encode_snapshot(answers, section_times={'0': 10})

    assert isinstance(decode_snapshot(raw), EnvelopeSnapshot)

    del raw['version']
    with pytest.raises(SnapshotDecodeError):
        decode_snapshot(raw)
