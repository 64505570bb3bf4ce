"""
Data access for the canonical translation entry table.
Rows are the source of truth; vectors are rebuilt from them.
"""

import sqlite3
from datetime import datetime
from typing import Dict, List, Optional

from .config import PRIMARY_LANGUAGE, SUPPORTED_LANGUAGES
from .db import TABLE_NAME, get_db, health_check, init_db
from .schema import TranslationEntry
from util.logging import logger

_COLUMNS = SUPPORTED_LANGUAGES + ["vector_id", "created_at", "updated_at"]


def _parse_timestamp(value) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


def _row_to_entry(row: sqlite3.Row) -> TranslationEntry:
    return TranslationEntry(
        texts={language: row[language] or "" for language in SUPPORTED_LANGUAGES},
        vector_id=row["vector_id"],
        created_at=_parse_timestamp(row["created_at"]),
        updated_at=_parse_timestamp(row["updated_at"])
    )


class EntryDAO:
    """CRUD and LIKE search over the entry table."""

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path
        init_db(db_path)

    def get_entry(self, key: str) -> Optional[TranslationEntry]:
        """Get an entry by its primary-language text."""
        if not key or not key.strip():
            return None

        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT {', '.join(_COLUMNS)} FROM {TABLE_NAME} WHERE {PRIMARY_LANGUAGE} = ?",
                (key.strip(),)
            )
            row = cursor.fetchone()

        return _row_to_entry(row) if row else None

    def get_entries(self, keys: List[str]) -> Dict[str, TranslationEntry]:
        """Entries for several keys at once, keyed by primary-language text."""
        if not keys:
            return {}

        placeholders = ", ".join("?" for _ in keys)
        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT {', '.join(_COLUMNS)} FROM {TABLE_NAME} WHERE {PRIMARY_LANGUAGE} IN ({placeholders})",
                list(keys)
            )
            rows = cursor.fetchall()

        return {row[PRIMARY_LANGUAGE]: _row_to_entry(row) for row in rows}

    def insert_entry(self, entry: TranslationEntry) -> bool:
        """Insert a new entry. Returns False when the key already exists."""
        values = [entry.texts.get(language) or "" for language in SUPPORTED_LANGUAGES]
        values[SUPPORTED_LANGUAGES.index(PRIMARY_LANGUAGE)] = entry.key
        columns = SUPPORTED_LANGUAGES + ["vector_id"]

        try:
            with get_db(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute(
                    f"INSERT INTO {TABLE_NAME} ({', '.join(columns)}) VALUES ({', '.join('?' for _ in columns)})",
                    values + [entry.vector_id]
                )
                conn.commit()
        except sqlite3.IntegrityError:
            logger.warning(f"Entry already exists: {entry.key[:50]}")
            return False

        return True

    def update_entry(self, key: str, texts: Dict[str, str], vector_id: Optional[str] = None) -> bool:
        """Update language columns (and optionally vector_id). Returns False when no row matched."""
        assignments = []
        params = []
        for language, text in texts.items():
            if language == PRIMARY_LANGUAGE or language not in SUPPORTED_LANGUAGES:
                continue
            assignments.append(f"{language} = ?")
            params.append(text or "")

        if vector_id is not None:
            assignments.append("vector_id = ?")
            params.append(vector_id)

        if not assignments:
            return self.get_entry(key) is not None

        assignments.append("updated_at = CURRENT_TIMESTAMP")
        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"UPDATE {TABLE_NAME} SET {', '.join(assignments)} WHERE {PRIMARY_LANGUAGE} = ?",
                params + [key.strip()]
            )
            conn.commit()
            return cursor.rowcount > 0

    def set_vector_id(self, key: str, vector_id: Optional[str]) -> bool:
        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"UPDATE {TABLE_NAME} SET vector_id = ? WHERE {PRIMARY_LANGUAGE} = ?",
                (vector_id, key.strip())
            )
            conn.commit()
            return cursor.rowcount > 0

    def delete_entry(self, key: str) -> bool:
        """Delete an entry. Returns False when no row matched."""
        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(f"DELETE FROM {TABLE_NAME} WHERE {PRIMARY_LANGUAGE} = ?", (key.strip(),))
            conn.commit()
            return cursor.rowcount > 0

    def search_entries(self, search: Optional[str] = None, limit: int = 100,
                       offset: int = 0) -> List[TranslationEntry]:
        """LIKE search on the primary and English columns; every entry when search is empty."""
        limit = max(1, min(int(limit), 1000))
        offset = max(0, int(offset))

        sql = f"SELECT {', '.join(_COLUMNS)} FROM {TABLE_NAME}"
        params: List = []
        if search and search.strip():
            pattern = f"%{search.strip()}%"
            sql += f" WHERE {PRIMARY_LANGUAGE} LIKE ? OR English LIKE ?"
            params.extend([pattern, pattern])
        sql += " ORDER BY created_at, rowid LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(sql, params)
            rows = cursor.fetchall()

        return [_row_to_entry(row) for row in rows]

    def list_all_entries(self) -> List[TranslationEntry]:
        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT {', '.join(_COLUMNS)} FROM {TABLE_NAME} ORDER BY rowid")
            rows = cursor.fetchall()

        return [_row_to_entry(row) for row in rows]

    def count_entries(self) -> int:
        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT COUNT(*) FROM {TABLE_NAME}")
            return cursor.fetchone()[0]

    def health_check(self) -> bool:
        return health_check(self.db_path)
