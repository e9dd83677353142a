"""Encoding of in-progress answer snapshots.

Two shapes exist in storage: the original bare list of answers, and the
envelope written today, which also carries per-section elapsed time and the
section the test-taker was on. The envelope is tagged with ``version``; a
payload without that key is read as the bare list and an unknown version is
rejected. Writes always produce the current envelope.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from assessment_engine.services.answer_evaluator import SubmittedAnswer

SNAPSHOT_VERSION = 2


class SnapshotDecodeError(ValueError):
    pass


@dataclass(frozen=True)
class LegacySnapshot:
    answers: list[SubmittedAnswer]


@dataclass(frozen=True)
class EnvelopeSnapshot:
    answers: list[SubmittedAnswer]
    section_times: dict[str, int] = field(default_factory=dict)
    current_section: int = 0


Snapshot = Union[LegacySnapshot, EnvelopeSnapshot]


def _decode_answers(raw: Any) -> list[SubmittedAnswer]:
    if not isinstance(raw, list):
        raise SnapshotDecodeError('Snapshot answers must be a list')
    try:
        return [SubmittedAnswer.from_dict(item) for item in raw]
    except (KeyError, TypeError, ValueError) as exc:
        raise SnapshotDecodeError(f'Invalid snapshot answer: {exc}') from exc


def decode_snapshot(raw: Any) -> Snapshot:
    if raw is None:
        return EnvelopeSnapshot(answers=[])
    version = raw.get('version') if isinstance(raw, dict) else None
    if version is None:
        if not isinstance(raw, list):
            raise SnapshotDecodeError(f'Unrecognized snapshot shape: {type(raw).__name__}')
        return LegacySnapshot(answers=_decode_answers(raw))
    if version != SNAPSHOT_VERSION:
        raise SnapshotDecodeError(f'Unsupported snapshot version: {version!r}')

    answers = _decode_answers(raw.get('answers'))
    section_times = raw.get('section_times') or {}
    if not isinstance(section_times, dict):
        raise SnapshotDecodeError('section_times must be a mapping')
    try:
        return EnvelopeSnapshot(
            answers=answers,
            section_times={str(key): int(value) for key, value in section_times.items()},
            current_section=int(raw.get('current_section') or 0),
        )
    except (TypeError, ValueError) as exc:
        raise SnapshotDecodeError(f'Invalid snapshot envelope: {exc}') from exc


def encode_snapshot(
    answers: list[SubmittedAnswer],
    *,
    section_times: dict[str, int] | None = None,
    current_section: int = 0,
) -> dict[str, Any]:
    return {
        'version': SNAPSHOT_VERSION,
        'answers': [answer.to_dict() for answer in answers],
        'section_times': dict(section_times or {}),
        'current_section': current_section,
    }
