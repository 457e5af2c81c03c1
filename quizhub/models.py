"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Problems embed their quiz definition as a JSON document; quiz responses
form the ledger, with one row per `(problem, student)` pair enforced by a
unique constraint.
"""

from typing import Optional, List
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON, UniqueConstraint
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    """A registered user.

    Fields:
    - `username`: unique login name
    - `password_hash`: hashed password string (never store plaintext)
    - `role`: one of `student`, `company` or `admin`
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, nullable=False, unique=True)
    password_hash: str
    role: str = Field(default="student", index=True)
    created_at: datetime = Field(default_factory=utcnow)


class Problem(SQLModel, table=True):
    """A posted challenge. `quiz` holds the embedded quiz definition, if any."""
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    company: str
    description: str = ""
    difficulty: Optional[str] = None
    posted_by: Optional[int] = Field(default=None, foreign_key='user.id')
    quiz: Optional[dict] = Field(default=None, sa_column=Column(JSON, nullable=True))
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class QuizResponse(SQLModel, table=True):
    """The single stored grading outcome for one student on one problem.

    `answers` is a list of `{question_index, answer_text, is_correct,
    points_awarded}` objects, one per graded question.
    """
    __table_args__ = (
        UniqueConstraint('problem_id', 'student_id', name='uq_quizresponse_problem_student'),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    problem_id: int = Field(foreign_key='problem.id', index=True)
    student_id: int = Field(foreign_key='user.id', index=True)
    answers: List[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    total_score: float = Field(default=0, index=True)
    max_score: float = 0
    percentage: int = Field(default=0, index=True)
    passed: bool = False
    time_spent_seconds: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
