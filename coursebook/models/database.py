import sqlite3
from typing import Any, Dict, Optional

import psycopg2
from psycopg2 import extras

from coursebook.core.config import DATABASE_URL, DB_PATH

POSTGRES_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS profiles (
        user_id TEXT PRIMARY KEY,
        role TEXT NOT NULL DEFAULT 'user' CHECK (role IN ('user', 'admin')),
        created_at TIMESTAMP DEFAULT NOW(),
        updated_at TIMESTAMP DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS courses (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        title TEXT NOT NULL,
        description TEXT,
        slug TEXT NOT NULL UNIQUE,
        published BOOLEAN NOT NULL DEFAULT FALSE,
        author_tone TEXT,
        last_validated_at TIMESTAMP,
        last_validation_severity TEXT,
        created_at TIMESTAMP DEFAULT NOW(),
        updated_at TIMESTAMP DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS lessons (
        id TEXT PRIMARY KEY,
        course_id TEXT NOT NULL REFERENCES courses(id) ON DELETE CASCADE,
        order_index INTEGER NOT NULL,
        title TEXT NOT NULL,
        logline TEXT,
        objectives TEXT NOT NULL DEFAULT '[]',
        guiding_questions TEXT NOT NULL DEFAULT '[]',
        expansion_tips TEXT NOT NULL DEFAULT '[]',
        examples_to_add TEXT NOT NULL DEFAULT '[]',
        content TEXT,
        created_at TIMESTAMP DEFAULT NOW(),
        updated_at TIMESTAMP DEFAULT NOW()
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_courses_user_id ON courses(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_courses_published ON courses(published)",
    "CREATE INDEX IF NOT EXISTS idx_lessons_order ON lessons(course_id, order_index)",
]

SQLITE_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS profiles (
        user_id TEXT PRIMARY KEY,
        role TEXT NOT NULL DEFAULT 'user' CHECK (role IN ('user', 'admin')),
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS courses (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        title TEXT NOT NULL,
        description TEXT,
        slug TEXT NOT NULL UNIQUE,
        published BOOLEAN NOT NULL DEFAULT 0,
        author_tone TEXT,
        last_validated_at TIMESTAMP,
        last_validation_severity TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS lessons (
        id TEXT PRIMARY KEY,
        course_id TEXT NOT NULL,
        order_index INTEGER NOT NULL,
        title TEXT NOT NULL,
        logline TEXT,
        objectives TEXT NOT NULL DEFAULT '[]',
        guiding_questions TEXT NOT NULL DEFAULT '[]',
        expansion_tips TEXT NOT NULL DEFAULT '[]',
        examples_to_add TEXT NOT NULL DEFAULT '[]',
        content TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (course_id) REFERENCES courses(id) ON DELETE CASCADE
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_courses_user_id ON courses(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_courses_published ON courses(published)",
    "CREATE INDEX IF NOT EXISTS idx_lessons_order ON lessons(course_id, order_index)",
]


def use_postgres() -> bool:
    return bool(DATABASE_URL)


def get_placeholder() -> str:
    return "%s" if use_postgres() else "?"


class DatabaseManager:
    def __init__(self, database_url: str = None, db_path: str = None):
        self.database_url = database_url or DATABASE_URL
        self.db_path = db_path or DB_PATH
        self.conn = None

    def connect(self):
        if self.database_url:
            self.conn = psycopg2.connect(self.database_url)
        else:
            self.conn = sqlite3.connect(self.db_path)

    def initialize_schema(self):
        cursor = self.conn.cursor()
        statements = POSTGRES_SCHEMA if self.database_url else SQLITE_SCHEMA
        for statement in statements:
            cursor.execute(statement)
        self.conn.commit()

    def clear(self):
        cursor = self.conn.cursor()
        for table in ("lessons", "courses", "profiles"):
            cursor.execute(f"DELETE FROM {table}")
        self.conn.commit()

    def close(self):
        if self.conn:
            self.conn.close()


def get_db_connection():
    if DATABASE_URL:
        conn = psycopg2.connect(DATABASE_URL, cursor_factory=extras.RealDictCursor)
    else:
        conn = sqlite3.connect(DB_PATH)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
    return conn


def row_to_dict(row) -> Optional[Dict[str, Any]]:
    if row is None:
        return None
    if isinstance(row, dict):
        return dict(row)
    return {key: row[key] for key in row.keys()}
