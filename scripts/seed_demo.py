#!/usr/bin/env python3
import argparse
import sys
import uuid
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / 'backend'))

from assessment_engine.db.session import SessionLocal  # noqa: E402
from assessment_engine.models import (  # noqa: E402
    Question,
    QuestionKeyword,
    QuestionOption,
    Simulation,
    SimulationQuestion,
    Student,
)

DEMO_CHOICE_QUESTIONS = [
    ('anatomy', 'Which bone is the longest in the human body?', ['Femur', 'Tibia', 'Humerus', 'Fibula']),
    ('anatomy', 'How many chambers does the human heart have?', ['Four', 'Two', 'Three', 'Five']),
    ('physiology', 'Which organ produces insulin?', ['Pancreas', 'Liver', 'Spleen', 'Kidney']),
    ('chemistry', 'What is the chemical symbol for sodium?', ['Na', 'So', 'Sd', 'S']),
]
DEMO_OPEN_QUESTION = (
    'physiology',
    'Describe how the cell membrane controls what enters the cell.',
    [('membrane', 1.0, True), ('permeable', 1.0, False), ('transport', 0.5, False)],
)


def seed(students: int, *, staff_grading: bool) -> Simulation:
    with SessionLocal() as db:
        simulation = Simulation(
            title='Demo admission mock exam',
            status='published',
            access_mode='open',
            is_public=True,
            correct_points=1.0,
            wrong_points=-0.25,
            blank_points=0.0,
            passing_score=3.0,
            duration_minutes=30,
            is_repeatable=True,
            max_attempts=3,
            randomize_order=True,
            randomize_answers=True,
            staff_correction_required=staff_grading,
            self_correction_enabled=not staff_grading,
        )
        db.add(simulation)

        questions: list[Question] = []
        for subject, text, options in DEMO_CHOICE_QUESTIONS:
            question = Question(question_type='single_choice', text=text, subject=subject)
            # The first listed option is the correct one.
            question.options = [
                QuestionOption(text=option, label='ABCD'[index], is_correct=index == 0, order_index=index)
                for index, option in enumerate(options)
            ]
            questions.append(question)

        subject, text, keywords = DEMO_OPEN_QUESTION
        open_question = Question(question_type='open_text', text=text, subject=subject)
        open_question.keywords = [
            QuestionKeyword(keyword=keyword, weight=weight, is_required=required)
            for keyword, weight, required in keywords
        ]
        questions.append(open_question)

        db.add_all(questions)
        db.flush()
        for order_index, question in enumerate(questions):
            db.add(SimulationQuestion(simulation_id=simulation.id, question_id=question.id, order_index=order_index))

        for index in range(students):
            db.add(Student(user_id=uuid.uuid4(), full_name=f'Demo Student {index + 1}'))

        db.commit()
        return simulation


def main() -> int:
    parser = argparse.ArgumentParser(description='Seed a published demo simulation and a few students.')
    parser.add_argument('--students', type=int, default=5, help='Number of demo students to create.')
    parser.add_argument(
        '--staff-grading',
        action='store_true',
        help='Route free-text answers to the staff grading queue instead of self-correction.',
    )
    args = parser.parse_args()

    simulation = seed(args.students, staff_grading=args.staff_grading)
    print(f'Seeded simulation {simulation.id} with {args.students} student(s).')
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
