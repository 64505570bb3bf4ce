"""
SQLite storage for the canonical translation entry table.
One row per primary-language string, one TEXT column per supported language.
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from .config import DB_PATH, PRIMARY_LANGUAGE, SUPPORTED_LANGUAGES

TABLE_NAME = "translate"


@contextmanager
def get_db(db_path: Optional[str] = None) -> Generator[sqlite3.Connection, None, None]:
    """Get a SQLite database connection."""
    conn = sqlite3.connect(db_path or DB_PATH)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


def init_db(db_path: Optional[str] = None):
    """Initialize the database with the entry table."""
    path = db_path or DB_PATH
    if path != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)

    # Column names come from the fixed language list, never from input
    language_columns = ",\n".join(
        f"{language} TEXT PRIMARY KEY" if language == PRIMARY_LANGUAGE else f"{language} TEXT"
        for language in SUPPORTED_LANGUAGES
    )

    with get_db(path) as conn:
        cursor = conn.cursor()
        cursor.execute(f'''
            CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
                {language_columns},
                vector_id TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')
        cursor.execute(f'CREATE INDEX IF NOT EXISTS idx_{TABLE_NAME}_english ON {TABLE_NAME}(English)')
        conn.commit()


def health_check(db_path: Optional[str] = None) -> bool:
    """Check that the database opens and holds the entry table."""
    try:
        with get_db(db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT name FROM sqlite_master WHERE type='table';")
            table_names = [table[0] for table in cursor.fetchall()]
    except sqlite3.Error:
        return False

    return TABLE_NAME in table_names
