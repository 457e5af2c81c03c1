"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (users,
problems, quiz responses). Repositories return SQLModel objects and
perform commits/refreshes where appropriate.
"""

from typing import List, Optional
from sqlmodel import Session, select
from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from . import models
from .errors import StorageError
from .schemas import QuizDefinition

# largest id a signed 64-bit INTEGER column can hold
MAX_ROW_ID = 2 ** 63 - 1


def valid_row_id(value: int) -> bool:
    return 0 < value <= MAX_ROW_ID


class UserRepository:
    """CRUD operations for `User` objects."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, user: models.User) -> models.User:
        """Persist a new user and return the managed instance."""
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def get_by_username(self, username: str) -> Optional[models.User]:
        """Return a `User` by username or `None` if not found."""
        stmt = select(models.User).where(models.User.username == username)
        return self.session.exec(stmt).first()

    def get(self, user_id: int) -> Optional[models.User]:
        """Get a `User` by primary key."""
        return self.session.get(models.User, user_id)


class ProblemRepository:
    """Lookups for `Problem` records and their embedded quiz."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, problem: models.Problem) -> models.Problem:
        self.session.add(problem)
        self.session.commit()
        self.session.refresh(problem)
        return problem

    def get(self, problem_id: int) -> Optional[models.Problem]:
        """Fetch a problem by id, or `None` (also for ids no row can have)."""
        if not valid_row_id(problem_id):
            return None
        return self.session.get(models.Problem, problem_id)

    @staticmethod
    def quiz_for(problem: models.Problem) -> Optional[QuizDefinition]:
        """Parse the embedded quiz document; `None` when the problem has none."""
        if not problem.quiz:
            return None
        return QuizDefinition.model_validate(problem.quiz)


_UPSERT_INSERTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class QuizResponseRepository:
    """The response ledger: one row per `(problem_id, student_id)` pair.

    Writes go through `upsert`, a single `INSERT ... ON CONFLICT DO UPDATE`
    statement against the table's unique constraint. Concurrent writers for
    the same pair therefore serialize in the database and the last one wins.
    """
    def __init__(self, session: Session):
        self.session = session

    def upsert(self, problem_id: int, student_id: int, data: dict) -> models.QuizResponse:
        """Insert the response for the pair, or replace the stored one."""
        dialect = self.session.get_bind().dialect.name
        insert = _UPSERT_INSERTS.get(dialect)
        if insert is None:
            raise StorageError(f"upsert not supported for database dialect {dialect!r}")
        now = models.utcnow()
        values = {
            **data,
            'problem_id': problem_id,
            'student_id': student_id,
            'created_at': now,
            'updated_at': now,
        }
        stmt = insert(models.QuizResponse.__table__).values(**values)
        # created_at keeps the first submission time
        replaced = {k: stmt.excluded[k] for k in values if k not in ('problem_id', 'student_id', 'created_at')}
        stmt = stmt.on_conflict_do_update(index_elements=['problem_id', 'student_id'], set_=replaced)
        try:
            self.session.connection().execute(stmt)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageError(f"could not save quiz response: {e}") from e
        return self.get(problem_id, student_id)

    def get(self, problem_id: int, student_id: int) -> Optional[models.QuizResponse]:
        """Return the stored response for the pair or `None`."""
        if not (valid_row_id(problem_id) and valid_row_id(student_id)):
            return None
        stmt = select(models.QuizResponse).where(
            models.QuizResponse.problem_id == problem_id,
            models.QuizResponse.student_id == student_id,
        ).execution_options(populate_existing=True)
        return self.session.exec(stmt).first()

    def count_for(self, problem_id: int, student_id: int) -> int:
        stmt = select(func.count()).select_from(models.QuizResponse).where(
            models.QuizResponse.problem_id == problem_id,
            models.QuizResponse.student_id == student_id,
        )
        return self.session.exec(stmt).one()

    def top_by_percentage(self, problem_id: int, limit: int = 10) -> List[models.QuizResponse]:
        """Highest percentages first; earlier submissions win ties."""
        if not valid_row_id(problem_id):
            return []
        stmt = select(models.QuizResponse).where(models.QuizResponse.problem_id == problem_id).order_by(
            models.QuizResponse.percentage.desc(), models.QuizResponse.updated_at.asc()
        ).limit(limit)
        return self.session.exec(stmt).all()

    def top_by_total_score(self, problem_id: int, limit: int = 10) -> List[models.QuizResponse]:
        """Highest raw scores first; earlier submissions win ties."""
        if not valid_row_id(problem_id):
            return []
        stmt = select(models.QuizResponse).where(models.QuizResponse.problem_id == problem_id).order_by(
            models.QuizResponse.total_score.desc(), models.QuizResponse.updated_at.asc()
        ).limit(limit)
        return self.session.exec(stmt).all()

    def list_for_student(self, student_id: int) -> List[models.QuizResponse]:
        """All responses of one student, most recently updated first."""
        stmt = select(models.QuizResponse).where(models.QuizResponse.student_id == student_id).order_by(
            models.QuizResponse.updated_at.desc()
        )
        return self.session.exec(stmt).all()
