from datetime import date
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tutorhub.api.deps import get_db, get_today
from tutorhub.db.base import Base
from tutorhub.main import app
from tutorhub.models import (
    Assessment,
    Classroom,
    ClassroomMember,
    LearnerGroup,
    LearnerGroupMember,
    Review,
    ReviewQuestion,
    User,
)


TODAY = date(2025, 3, 22)


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def world(db):
    """Teacher 1; learners 2, 3 in classroom 5; learner 4 in classroom 9 and group 3.

    Review 1 has two questions: Paris/Lyon/Nice (Paris) and 3/4/5 (4).
    Review 2 has none; review 3 has one (Nile/Mekong).
    """

    db.add_all([
        User(id=1, email="teacher1@demo.local", full_name="Teacher 1", role="teacher"),
        User(id=2, email="learner2@demo.local", full_name="An Nguyen", role="learner"),
        User(id=3, email="learner3@demo.local", full_name="Binh Tran", role="learner"),
        User(id=4, email="learner4@demo.local", full_name="Chi Le", role="learner"),
    ])
    db.add_all([
        Classroom(id=5, teacher_id=1, name="10A1", grade="10", subject="Geography"),
        Classroom(id=9, teacher_id=1, name="10A2", grade="10", subject="Geography"),
        LearnerGroup(id=3, teacher_id=1, name="Olympiad"),
    ])
    db.flush()
    db.add_all([
        ClassroomMember(classroom_id=5, user_id=2),
        ClassroomMember(classroom_id=5, user_id=3),
        ClassroomMember(classroom_id=9, user_id=4),
        LearnerGroupMember(group_id=3, user_id=4),
    ])
    review = Review(id=1, teacher_id=1, title="Capitals", subject="Geography", grade="10", time_limit="00:30")
    db.add(review)
    db.flush()
    db.add_all([
        ReviewQuestion(
            id=11,
            review_id=1,
            question_number=1,
            question_text="Capital of France?",
            options=["Paris", "Lyon", "Nice"],
            correct_answer="Paris",
            explanation="Paris has been the capital since 987.",
        ),
        ReviewQuestion(
            id=12,
            review_id=1,
            question_number=2,
            question_text="2 + 2 = ?",
            options=["3", "4", "5"],
            correct_answer="4",
        ),
    ])
    db.add(Review(id=2, teacher_id=1, title="Empty", subject="Geography", grade="10"))
    db.add(Review(id=3, teacher_id=1, title="Rivers", subject="Geography", grade="10"))
    db.flush()
    db.add(
        ReviewQuestion(
            id=31,
            review_id=3,
            question_number=1,
            question_text="Longest river?",
            options=["Nile", "Mekong"],
            correct_answer="Nile",
        )
    )
    db.commit()
    return SimpleNamespace(
        teacher_id=1,
        learners=[2, 3, 4],
        review_id=1,
        empty_review_id=2,
        other_review_id=3,
        today=TODAY,
    )


@pytest.fixture
def make_assessment(db):
    def _make(**overrides):
        values = dict(
            review_id=1,
            teacher_id=1,
            title="Capitals quiz",
            subject="Geography",
            grade="10",
            question_count=2,
            start_date=date(2025, 3, 20),
            end_date=date(2025, 3, 27),
            status="scheduled",
            audience_kind="class",
            target_class_ids=[5],
            target_group_ids=[],
            target_learner_ids=[],
        )
        values.update(overrides)
        row = Assessment(**values)
        db.add(row)
        db.commit()
        db.refresh(row)
        return row

    return _make


@pytest.fixture
def client(db):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_today] = lambda: TODAY
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def teacher_headers(user_id=1):
    return {"X-User-Id": str(user_id), "X-User-Role": "teacher"}


def learner_headers(user_id):
    return {"X-User-Id": str(user_id), "X-User-Role": "learner"}


@pytest.fixture
def headers():
    return SimpleNamespace(teacher=teacher_headers, learner=learner_headers)
