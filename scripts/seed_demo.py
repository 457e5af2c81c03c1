"""CLI script to seed demo users and a quiz problem into the backend DB.
Usage: python scripts/seed_demo.py [--answers Paris,true]
"""
import sys
import argparse
import pathlib
from typing import List, Optional
# Ensure the project root is on sys.path so `quizhub` imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session
from quizhub.database import engine, create_db_and_tables
from quizhub import services, repositories

DEMO_QUIZ = {
    'enabled': True,
    'title': 'Capitals warm-up',
    'questions': [
        {
            'text': 'Capital of France?',
            'kind': 'multiple_choice',
            'options': [{'text': 'Paris', 'is_correct': True}, {'text': 'Lyon'}],
            'points': 2,
        },
        {'text': 'Is the Earth round?', 'kind': 'boolean', 'correct_answer': 'true'},
    ],
    'time_limit_minutes': 10,
    'passing_score_percent': 70,
}


def _user(session: Session, username: str, role: str):
    existing = repositories.UserRepository(session).get_by_username(username)
    if existing:
        return existing
    return services.AuthService(session).register(username, username, role=role)


def main(answers: Optional[List[str]] = None):
    """Create demo users and a problem, then grade one sample attempt.

    The sample attempt is submitted on behalf of the demo student through
    the trusted internal fallback, since there is no HTTP caller here.
    """
    create_db_and_tables()
    with Session(engine) as session:
        company = _user(session, 'democompany', 'company')
        student = _user(session, 'demostudent', 'student')
        problem = services.ProblemService(session).create(
            posted_by=company.id,
            title='Demo challenge',
            company='Demo Co',
            description='A sample problem with a short quiz.',
            quiz=DEMO_QUIZ,
        )
        print(f'Created problem {problem.id} for company {company.username}')
        result = services.QuizEvaluationService(session).submit(
            problem.id,
            answers if answers is not None else ['Paris', 'true'],
            trusted_student_id=student.id,
        )
        print(f"Graded {student.username}: {result['score']}/{result['max_score']} "
              f"({result['percentage']}%) passed={result['passed']}")


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('--answers', help='Comma-separated answers for the demo attempt')
    args = parser.parse_args()
    main(answers=args.answers.split(',') if args.answers else None)
