import os

test_db_path = "/tmp/test_coursebook.db"
os.environ["DB_PATH"] = test_db_path
os.environ["DATABASE_URL"] = ""
os.environ["ENVIRONMENT"] = "development"
os.environ["DEV_BYPASS_AUTH"] = "true"
os.environ["SUPABASE_URL"] = ""
os.environ["SUPABASE_JWT_SECRET"] = ""

import json
import uuid

import pytest

from coursebook.api.app import create_app
from coursebook.core.auth import AuthContext
from coursebook.models.database import DatabaseManager, get_db_connection


@pytest.fixture(autouse=True)
def setup_test_db():
    db = DatabaseManager()
    db.connect()
    db.initialize_schema()
    db.clear()
    yield
    db.close()


@pytest.fixture
def client(setup_test_db):
    app = create_app()
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


@pytest.fixture
def owner():
    return AuthContext(user_id="dev_user", email="dev@localhost")


@pytest.fixture
def admin():
    return AuthContext(user_id="admin_user", email="admin@localhost", is_admin=True)


def insert_course(
    user_id="dev_user",
    title="Intro to Go",
    slug=None,
    published=False,
    updated_at="2025-01-01T00:00:00+00:00",
    description=None,
    last_validated_at=None,
    last_validation_severity=None,
    lessons=(),
):
    course_id = str(uuid.uuid4())
    slug = slug or f"course-{course_id[:8]}"
    conn = get_db_connection()
    try:
        cursor = conn.cursor()
        cursor.execute(
            """INSERT INTO courses (
                id, user_id, title, description, slug, published,
                last_validated_at, last_validation_severity, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                course_id,
                user_id,
                title,
                description,
                slug,
                published,
                last_validated_at,
                last_validation_severity,
                updated_at,
                updated_at,
            ),
        )
        for index, lesson_title in enumerate(lessons):
            cursor.execute(
                """INSERT INTO lessons (id, course_id, order_index, title, objectives)
                VALUES (?, ?, ?, ?, ?)""",
                (
                    str(uuid.uuid4()),
                    course_id,
                    index,
                    lesson_title,
                    json.dumps([f"Understand {lesson_title}"]),
                ),
            )
        conn.commit()
    finally:
        conn.close()
    return {"id": course_id, "slug": slug}


@pytest.fixture
def make_course():
    return insert_course
