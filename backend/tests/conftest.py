import os
import uuid
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

TEST_DATABASE_URL = os.getenv('TEST_DATABASE_URL', 'sqlite://')

os.environ.setdefault('DATABASE_URL', TEST_DATABASE_URL)
os.environ.setdefault('APP_ENV', 'test')
os.environ.setdefault('CORS_ORIGINS', 'http://localhost:3001')
os.environ.setdefault('LOG_LEVEL', 'WARNING')

from assessment_engine.db.base import Base
from assessment_engine.db.session import get_db
from assessment_engine.main import app
from assessment_engine.models import (
    Question,
    QuestionKeyword,
    QuestionOption,
    Simulation,
    SimulationQuestion,
    Student,
)

from tests.fakes import Harness


if TEST_DATABASE_URL.startswith('sqlite'):
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
else:
    engine = create_engine(TEST_DATABASE_URL, pool_pre_ping=True)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@pytest.fixture()
def harness() -> Harness:
    return Harness()


@pytest.fixture()
def setup_database() -> Generator[None, None, None]:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session(setup_database: None) -> Generator[Session, None, None]:
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    def _override_db() -> Generator[Session, None, None]:
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = _override_db

    with TestClient(app) as api_client:
        yield api_client

    app.dependency_overrides.clear()


def actor_headers(user_id: uuid.UUID, role: str = 'student') -> dict[str, str]:
    return {'X-Actor-Id': str(user_id), 'X-Actor-Role': role}


def seed_student(db: Session, full_name: str = 'Ana Petrova') -> Student:
    student = Student(user_id=uuid.uuid4(), full_name=full_name)
    db.add(student)
    db.flush()
    return student


def seed_simulation(db: Session, *, open_questions: int = 0, **overrides) -> tuple[Simulation, list[Question]]:
    """Published simulation with three single-choice questions (first option correct) plus optional free-text ones."""
    values = {
        'title': 'Anatomy mock exam',
        'status': 'published',
        'is_public': True,
        'correct_points': 1.0,
        'wrong_points': -0.25,
        'blank_points': 0.0,
        'created_by': uuid.uuid4(),
    }
    values.update(overrides)
    simulation = Simulation(**values)
    db.add(simulation)
    db.flush()

    questions: list[Question] = []
    for index in range(3):
        question = Question(question_type='single_choice', text=f'Choice question {index + 1}', subject='anatomy')
        question.options = [
            QuestionOption(text=f'Option {label}', label=label, is_correct=position == 0, order_index=position)
            for position, label in enumerate('ABC')
        ]
        questions.append(question)
    for index in range(open_questions):
        question = Question(question_type='open_text', text=f'Explain topic {index + 1}', subject='physiology')
        question.keywords = [QuestionKeyword(keyword='membrane', weight=1.0, is_required=True)]
        questions.append(question)

    db.add_all(questions)
    db.flush()
    for order_index, question in enumerate(questions):
        db.add(SimulationQuestion(simulation_id=simulation.id, question_id=question.id, order_index=order_index))
    db.flush()
    return simulation, questions
