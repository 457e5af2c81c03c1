"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the challenge hub quiz
backend. Controllers are intentionally thin: they accept requests,
delegate to services, and return JSON responses.

Endpoints implemented:
- POST /auth/register
- POST /auth/login
- POST /problems
- GET /problems/{problem_id}/quiz
- POST /quiz/submit
- GET /quiz/responses
- GET /quiz/response/{problem_id}
- GET /quiz/response/{problem_id}/{student_id}
- GET /quiz/leaderboard/{problem_id}
- GET /health
"""

from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import Session
from typing import Optional
import json
import logging
import time
import uuid
import uvicorn
from .database import create_db_and_tables, get_session
from . import services, repositories
from .auth import get_current_identity, get_optional_identity, require_roles
from .config import settings
from .errors import QuizHubError
from .schemas import RegisterIn, LoginIn, TokenOut, ProblemIn, QuizSubmissionIn, SubmissionResult, ResponseOut
from .services import Identity

app = FastAPI(title="Challenge Hub Quiz API")
logger = logging.getLogger("quizhub.api")
if not logger.handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)

# Wide-open CORS keeps local frontends working without extra config in dev.
if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

create_db_and_tables()


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        if request.url.path.startswith("/quiz"):
            logger.exception(
                "request_failed %s",
                json.dumps(
                    {
                        "request_id": req_id,
                        "path": request.url.path,
                        "method": request.method,
                        "duration_ms": elapsed_ms,
                    },
                    ensure_ascii=True,
                ),
            )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    if request.url.path.startswith("/quiz"):
        logger.info(
            "request_done %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "status_code": response.status_code,
                    "duration_ms": elapsed_ms,
                },
                ensure_ascii=True,
            ),
        )
    return response


@app.exception_handler(QuizHubError)
async def quiz_error_handler(request: Request, exc: QuizHubError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.kind, "detail": exc.message},
    )


@app.post('/auth/register')
def register(payload: RegisterIn, db: Session = Depends(get_session)):
    """Register a new user (idempotent).

    Returns the existing user if the username is already taken so the
    operation can be repeated by automation and tests.
    """
    existing = repositories.UserRepository(db).get_by_username(payload.username)
    if existing:
        return {'id': existing.id, 'username': existing.username, 'role': existing.role}
    user = services.AuthService(db).register(payload.username, payload.password, role=payload.role)
    return {'id': user.id, 'username': user.username, 'role': user.role}


@app.post('/auth/login', response_model=TokenOut)
def login(payload: LoginIn, db: Session = Depends(get_session)):
    """Authenticate a user and return a short-lived JWT token.

    The token carries `user_id`, `username` and `role`.
    """
    token = services.AuthService(db).authenticate(payload.username, payload.password)
    if not token:
        raise HTTPException(status_code=401, detail='invalid credentials')
    return {'access_token': token}


@app.post('/problems', status_code=201)
def create_problem(payload: ProblemIn, db: Session = Depends(get_session),
                   identity: Identity = Depends(require_roles('company', 'admin'))):
    """Post a problem, optionally with an embedded quiz (company/admin only)."""
    quiz = payload.quiz.model_dump(mode='json') if payload.quiz else None
    p = services.ProblemService(db).create(
        posted_by=identity.id,
        title=payload.title,
        company=payload.company,
        description=payload.description,
        difficulty=payload.difficulty,
        quiz=quiz,
    )
    return {'id': p.id, 'title': p.title, 'quiz_enabled': bool(quiz and quiz.get('enabled'))}


@app.get('/problems/{problem_id}/quiz')
def get_problem_quiz(problem_id: int, db: Session = Depends(get_session),
                     identity: Identity = Depends(get_current_identity)):
    """Return a problem's quiz for taking; correct answers are not included."""
    return services.ProblemService(db).public_quiz(problem_id)


@app.post('/quiz/submit', response_model=SubmissionResult)
def submit_quiz(submission: QuizSubmissionIn, db: Session = Depends(get_session),
                identity: Optional[Identity] = Depends(get_optional_identity)):
    """Grade a quiz attempt and store it as the caller's response.

    The student is always the authenticated caller. Submitting again
    replaces the previous response for the same problem.
    """
    svc = services.QuizEvaluationService(db)
    return svc.submit(
        submission.problem_id,
        submission.answers,
        identity=identity,
        time_spent_seconds=submission.time_spent_seconds,
    )


def _response_out(r) -> dict:
    return ResponseOut(
        problem_id=r.problem_id,
        student_id=r.student_id,
        answers=r.answers,
        total_score=r.total_score,
        max_score=r.max_score,
        percentage=r.percentage,
        passed=r.passed,
        time_spent_seconds=r.time_spent_seconds,
    ).model_dump()


@app.get('/quiz/responses')
def list_own_responses(db: Session = Depends(get_session), identity: Identity = Depends(get_current_identity)):
    """List the caller's stored responses across problems, newest first."""
    return {'responses': services.QuizEvaluationService(db).list_responses(identity.id)}


@app.get('/quiz/response/{problem_id}')
def get_own_response(problem_id: int, db: Session = Depends(get_session),
                     identity: Identity = Depends(get_current_identity)):
    """Return the caller's stored response for a problem."""
    r = services.QuizEvaluationService(db).get_response(problem_id, identity.id)
    return _response_out(r)


@app.get('/quiz/response/{problem_id}/{student_id}')
def get_student_response(problem_id: int, student_id: int, db: Session = Depends(get_session),
                         identity: Identity = Depends(get_current_identity)):
    """Return a student's stored response (company/admin, or the student)."""
    if identity.role not in ('company', 'admin') and identity.id != student_id:
        raise HTTPException(status_code=403, detail='access denied')
    r = services.QuizEvaluationService(db).get_response(problem_id, student_id)
    return _response_out(r)


@app.get('/quiz/leaderboard/{problem_id}')
def leaderboard(problem_id: int, order_by: str = 'percentage', limit: int = 10,
                db: Session = Depends(get_session), identity: Identity = Depends(get_current_identity)):
    """Rank stored responses for a problem by `percentage` or `total_score`."""
    entries = services.QuizEvaluationService(db).leaderboard(problem_id, order_by=order_by, limit=limit)
    return {'problem_id': problem_id, 'order_by': order_by, 'entries': entries}


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}


def run():
    """Serve the API with uvicorn on `settings.HOST`/`settings.PORT`."""
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == '__main__':
    run()
