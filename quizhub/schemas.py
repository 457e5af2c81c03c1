"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable and provide validation for
controller handlers and tests. The quiz definition shapes are also used
to read the JSON document embedded on a `Problem`.
"""

from enum import Enum
import math
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Any, List, Optional

from .config import settings


class RegisterIn(BaseModel):
    """Payload for user registration."""
    username: str
    password: str
    role: str = "student"

    @field_validator("role")
    @classmethod
    def _known_role(cls, v: str) -> str:
        if v not in ("student", "company", "admin"):
            raise ValueError("role must be student, company or admin")
        return v


class LoginIn(BaseModel):
    """Payload for the login endpoint."""
    username: str
    password: str


class TokenOut(BaseModel):
    """Authentication response containing an access token."""
    access_token: str


class QuestionKind(str, Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    FREE_TEXT = "free_text"
    BOOLEAN = "boolean"


# spellings used by older problem documents
_LEGACY_KINDS = {"multiple-choice": "multiple_choice", "text": "free_text"}


class QuizOption(BaseModel):
    """One selectable option of a multiple choice question."""
    text: str
    is_correct: bool = False


class QuizQuestion(BaseModel):
    """A single quiz question. Position in the quiz is its identity."""
    text: str
    kind: QuestionKind
    options: List[QuizOption] = Field(default_factory=list)
    correct_answer: Optional[str] = None
    points: Optional[float] = Field(default=1, ge=0, allow_inf_nan=False)

    @field_validator("kind", mode="before")
    @classmethod
    def _legacy_kind(cls, v):
        if isinstance(v, str):
            return _LEGACY_KINDS.get(v, v)
        return v


class QuizDefinition(BaseModel):
    """Quiz embedded in a problem: ordered questions plus thresholds."""
    enabled: bool = False
    title: Optional[str] = None
    description: Optional[str] = None
    questions: List[QuizQuestion] = Field(default_factory=list)
    time_limit_minutes: float = Field(default=30, ge=0)
    passing_score_percent: float = Field(default_factory=lambda: settings.DEFAULT_PASSING_SCORE, ge=0, le=100)

    @model_validator(mode="after")
    def _finite_total(self):
        total = sum(1 if q.points is None else q.points for q in self.questions)
        if not math.isfinite(total):
            raise ValueError("total quiz points must be finite")
        return self


class ProblemIn(BaseModel):
    """Request format for posting a problem with an optional quiz."""
    title: str
    company: str
    description: str = ""
    difficulty: Optional[str] = None
    quiz: Optional[QuizDefinition] = None


class QuizSubmissionIn(BaseModel):
    """Quiz submission body.

    Fields are deliberately loose: shape checks happen in the evaluation
    service so that missing fields are reported as invalid input.
    """
    problem_id: Any = None
    answers: Any = None
    time_spent_seconds: Any = 0


class QuestionVerdict(BaseModel):
    """Per-question feedback returned after grading."""
    question_index: int
    question: str
    correct: bool
    points_awarded: float


class SubmissionResult(BaseModel):
    """Summary returned by `POST /quiz/submit`."""
    success: bool = True
    score: float
    max_score: float
    percentage: int
    passed: bool
    results: List[QuestionVerdict]


class AnswerRecord(BaseModel):
    """One graded answer as stored on a quiz response."""
    question_index: int
    answer_text: str
    is_correct: bool
    points_awarded: float


class ResponseOut(BaseModel):
    """A stored quiz response as returned by the read endpoints."""
    problem_id: int
    student_id: int
    answers: List[AnswerRecord]
    total_score: float
    max_score: float
    percentage: int
    passed: bool
    time_spent_seconds: int
