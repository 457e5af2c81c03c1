"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories and
the grader. Services are intentionally thin: they perform validation,
execute domain logic and persist aggregates via repositories. Failures
are raised as `quizhub.errors` exceptions so callers can tell them apart.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from passlib.context import CryptContext
import json
import jwt
import logging
import math
from typing import Any, List, Optional
from sqlmodel import Session
from . import models, repositories
from .config import settings
from .errors import InvalidInput, NotFound, StorageError, Unauthorized
from .utils.grader import grade, has_passed, percentage_of

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
MAX_ROW_ID = repositories.MAX_ROW_ID

logger = logging.getLogger("quizhub.services")


@dataclass(frozen=True)
class Identity:
    """Authenticated caller as vouched for by the auth layer."""
    id: int
    role: str


class AuthService:
    """Authentication related operations (register + authenticate)."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)

    def register(self, username: str, password: str, role: str = "student") -> models.User:
        """Create a new user with a hashed password.

        Returns the persisted `User` instance.
        """
        hashed = PWD_CTX.hash(password)
        u = models.User(username=username, password_hash=hashed, role=role)
        return self.user_repo.create(u)

    def authenticate(self, username: str, password: str):
        """Verify credentials and return a signed JWT token on success.

        Returns `None` if authentication fails.
        """
        user = self.user_repo.get_by_username(username)
        if not user:
            return None
        if not PWD_CTX.verify(password, user.password_hash):
            return None
        expire = datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRE_HOURS)
        payload = {"user_id": user.id, "username": user.username, "role": user.role, "exp": int(expire.timestamp())}
        return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


class ProblemService:
    """Post problems carrying an optional quiz."""
    def __init__(self, session: Session):
        self.session = session
        self.problem_repo = repositories.ProblemRepository(session)

    def create(self, posted_by: int, title: str, company: str, description: str = "",
               difficulty: Optional[str] = None, quiz: Optional[dict] = None) -> models.Problem:
        p = models.Problem(
            title=title,
            company=company,
            description=description,
            difficulty=difficulty,
            posted_by=posted_by,
            quiz=quiz,
        )
        return self.problem_repo.create(p)

    def public_quiz(self, problem_id: int) -> dict:
        """Return the enabled quiz of a problem without its answer key."""
        problem = self.problem_repo.get(problem_id)
        quiz = self.problem_repo.quiz_for(problem) if problem else None
        if not quiz or not quiz.enabled:
            raise NotFound("quiz not found for this problem")
        return {
            'problem_id': problem.id,
            'title': quiz.title,
            'description': quiz.description,
            'time_limit_minutes': quiz.time_limit_minutes,
            'passing_score_percent': quiz.passing_score_percent,
            'questions': [
                {
                    'question_index': i,
                    'text': q.text,
                    'kind': q.kind.value,
                    'options': [o.text for o in q.options],
                    'points': q.points,
                }
                for i, q in enumerate(quiz.questions)
            ],
        }


class QuizEvaluationService:
    """Grade quiz submissions and keep one stored response per student and problem."""
    def __init__(self, session: Session):
        self.session = session
        self.problem_repo = repositories.ProblemRepository(session)
        self.response_repo = repositories.QuizResponseRepository(session)

    def submit(self, problem_id: Optional[int], answers: Any, identity: Optional[Identity] = None,
               trusted_student_id: Optional[int] = None, time_spent_seconds: int = 0) -> dict:
        """Grade `answers` for `problem_id` and store the outcome.

        The student is taken from `identity`. `trusted_student_id` exists
        for internal callers such as seed scripts; HTTP handlers never pass
        it. A resubmission replaces the previously stored response.
        """
        if problem_id is None:
            raise InvalidInput("missing problem_id")
        if isinstance(problem_id, bool) or not isinstance(problem_id, int) or not repositories.valid_row_id(problem_id):
            raise InvalidInput("problem_id must be a positive integer id")
        if not isinstance(answers, list):
            raise InvalidInput("answers must be a list")
        if time_spent_seconds is None:
            time_spent_seconds = 0
        if isinstance(time_spent_seconds, bool) or not isinstance(time_spent_seconds, (int, float)) \
                or not math.isfinite(time_spent_seconds):
            raise InvalidInput("time_spent_seconds must be a number")
        problem = self.problem_repo.get(problem_id)
        if not problem:
            raise NotFound("problem not found")
        quiz = self.problem_repo.quiz_for(problem)
        if not quiz or not quiz.enabled:
            raise NotFound("quiz not found for this problem")
        if identity is not None:
            student_id = identity.id
        elif trusted_student_id is not None:
            student_id = trusted_student_id
        else:
            raise Unauthorized("missing authenticated student")

        graded = grade(quiz, answers)
        percentage = percentage_of(graded.total_score, graded.max_score)
        passed = has_passed(percentage, graded.max_score, quiz.passing_score_percent)
        data = {
            'answers': [g.as_record() for g in graded.per_question],
            'total_score': graded.total_score,
            'max_score': graded.max_score,
            'percentage': percentage,
            'passed': passed,
            'time_spent_seconds': min(MAX_ROW_ID, max(0, int(time_spent_seconds))),
        }
        try:
            self.response_repo.upsert(problem_id, student_id, data)
        except StorageError:
            logger.exception("quiz_store_failed problem=%s student=%s", problem_id, student_id)
            raise
        logger.info(
            "quiz_submitted %s",
            json.dumps({
                'problem_id': problem_id,
                'student_id': student_id,
                'score': graded.total_score,
                'percentage': percentage,
                'passed': passed,
            }),
        )
        return {
            'success': True,
            'score': graded.total_score,
            'max_score': graded.max_score,
            'percentage': percentage,
            'passed': passed,
            'results': [
                {
                    'question_index': g.question_index,
                    'question': g.question,
                    'correct': g.is_correct,
                    'points_awarded': g.points_awarded,
                }
                for g in graded.per_question
            ],
        }

    def get_response(self, problem_id: int, student_id: int) -> models.QuizResponse:
        """Return the stored response for the pair or raise `NotFound`."""
        response = self.response_repo.get(problem_id, student_id)
        if not response:
            raise NotFound("quiz response not found")
        return response

    def leaderboard(self, problem_id: int, order_by: str = "percentage", limit: int = 10) -> List[dict]:
        """Rank stored responses for a problem by percentage or total score."""
        if limit < 1:
            raise InvalidInput("limit must be >= 1")
        if order_by == "percentage":
            rows = self.response_repo.top_by_percentage(problem_id, limit=limit)
        elif order_by == "total_score":
            rows = self.response_repo.top_by_total_score(problem_id, limit=limit)
        else:
            raise InvalidInput("order_by must be 'percentage' or 'total_score'")
        return [
            {
                'rank': i + 1,
                'student_id': r.student_id,
                'total_score': r.total_score,
                'max_score': r.max_score,
                'percentage': r.percentage,
                'passed': r.passed,
            }
            for i, r in enumerate(rows)
        ]

    def list_responses(self, student_id: int) -> List[dict]:
        """Summaries of every stored response of one student, newest first."""
        return [
            {
                'problem_id': r.problem_id,
                'total_score': r.total_score,
                'max_score': r.max_score,
                'percentage': r.percentage,
                'passed': r.passed,
                'updated_at': r.updated_at.isoformat(),
            }
            for r in self.response_repo.list_for_student(student_id)
        ]
