"""SQLite-backed repositories."""

import json
import sqlite3
import threading
import uuid
import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator, List, Optional, TypeVar

from ..errors import ErrorContext, NotFoundError
from ..models import Original, Reviewer
from .base import (
    INDEXED_SONG_FIELDS,
    DuplicateKeyError,
    RepositoryError,
    ReviewerRepository,
    SongRepository,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SQLiteDatabase:
    """A shared SQLite connection with the schema for songs and reviewers.

    Writes run inside ``BEGIN IMMEDIATE`` transactions under a process-wide
    lock, so a read-modify-write of one record cannot interleave with
    another.
    """

    def __init__(self, db_path: str = ":memory:"):
        self.db_path = db_path
        self._lock = threading.RLock()
        with ErrorContext("connect", convert_to=RepositoryError, db_path=db_path):
            self.conn = sqlite3.connect(db_path, check_same_thread=False, isolation_level=None)
            self.conn.row_factory = sqlite3.Row
            self._initialize()

    def _initialize(self):
        """Create tables and indexes."""
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS songs (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                record_id TEXT NOT NULL UNIQUE,
                original_id TEXT NOT NULL UNIQUE,
                assigned_user TEXT,
                song_number INTEGER,
                document TEXT NOT NULL
            )
        """)
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS reviewers (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL UNIQUE
            )
        """)
        self.conn.execute("CREATE INDEX IF NOT EXISTS idx_songs_assigned_user ON songs (assigned_user)")

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block as one immediate transaction."""
        with self._lock:
            self.conn.execute("BEGIN IMMEDIATE")
            try:
                yield self.conn
            except BaseException:
                self.conn.execute("ROLLBACK")
                raise
            else:
                self.conn.execute("COMMIT")

    @contextmanager
    def reading(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            yield self.conn

    def close(self):
        with self._lock:
            self.conn.close()


def _load(row: sqlite3.Row) -> Original:
    return Original.model_validate(json.loads(row["document"]))


class SQLiteSongRepository(SongRepository):
    """Originals stored as JSON documents with their keys as indexed columns."""

    def __init__(self, database: SQLiteDatabase):
        super().__init__()
        self.db = database

    def get_by_id(self, id: str) -> Optional[Original]:
        with ErrorContext("get_original", convert_to=RepositoryError, record_id=id):
            with self.db.reading() as conn:
                row = conn.execute("SELECT document FROM songs WHERE record_id = ?", (id,)).fetchone()
        return _load(row) if row else None

    def find_by(self, field: str, value: Any) -> List[Original]:
        with ErrorContext("find_originals", convert_to=RepositoryError, field=field):
            with self.db.reading() as conn:
                column = INDEXED_SONG_FIELDS.get(field)
                if column:
                    rows = conn.execute(
                        f"SELECT document FROM songs WHERE {column} = ? ORDER BY seq", (value,)
                    ).fetchall()
                    return [_load(row) for row in rows]
                rows = conn.execute("SELECT document FROM songs ORDER BY seq").fetchall()
        documents = [json.loads(row["document"]) for row in rows]
        return [Original.model_validate(doc) for doc in documents if doc.get(field) == value]

    def find_all(self) -> List[Original]:
        with ErrorContext("list_originals", convert_to=RepositoryError):
            with self.db.reading() as conn:
                rows = conn.execute("SELECT document FROM songs ORDER BY seq").fetchall()
        return [_load(row) for row in rows]

    def create(self, item: Original) -> Original:
        created = item.model_copy(deep=True)
        created.record_id = uuid.uuid4().hex

        with ErrorContext("create_original", convert_to=RepositoryError, original_id=item.original_id):
            with self.db.transaction() as conn:
                taken = conn.execute(
                    "SELECT 1 FROM songs WHERE original_id = ?", (created.original_id,)
                ).fetchone()
                if taken:
                    raise DuplicateKeyError(
                        f"Original {created.original_id} already exists",
                        key="original_id",
                        value=created.original_id,
                    )
                if created.song_number is None:
                    row = conn.execute("SELECT MAX(song_number) AS top FROM songs").fetchone()
                    created.song_number = (row["top"] or 0) + 1
                self._insert(conn, created)

        logger.debug(f"Created original {created.original_id} as {created.record_id}")
        return created

    def save(self, item: Original) -> Original:
        if item.record_id is None or not self.exists(item.record_id):
            return self.create(item)

        with ErrorContext("save_original", convert_to=RepositoryError, record_id=item.record_id):
            with self.db.transaction() as conn:
                owner = conn.execute(
                    "SELECT record_id FROM songs WHERE original_id = ?", (item.original_id,)
                ).fetchone()
                if owner and owner["record_id"] != item.record_id:
                    raise DuplicateKeyError(
                        f"Original {item.original_id} already exists",
                        key="original_id",
                        value=item.original_id,
                    )
                self._write(conn, item)
        return item.model_copy(deep=True)

    def update(self, id: str, mutator: Callable[[Original], T]) -> T:
        with ErrorContext("update_original", convert_to=RepositoryError, record_id=id):
            with self.db.transaction() as conn:
                row = conn.execute(
                    "SELECT original_id, document FROM songs WHERE record_id = ?", (id,)
                ).fetchone()
                if row is None:
                    raise NotFoundError("Original not found", resource_type="original", resource_id=id)

                original = _load(row)
                result = mutator(original)
                original.record_id = id
                original.original_id = row["original_id"]
                self._write(conn, original)
        return result

    def _insert(self, conn: sqlite3.Connection, original: Original):
        conn.execute(
            """
            INSERT INTO songs (record_id, original_id, assigned_user, song_number, document)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                original.record_id,
                original.original_id,
                original.assigned_user,
                original.song_number,
                json.dumps(original.to_document()),
            ),
        )

    def _write(self, conn: sqlite3.Connection, original: Original):
        conn.execute(
            """
            UPDATE songs
            SET original_id = ?, assigned_user = ?, song_number = ?, document = ?
            WHERE record_id = ?
            """,
            (
                original.original_id,
                original.assigned_user,
                original.song_number,
                json.dumps(original.to_document()),
                original.record_id,
            ),
        )


class SQLiteReviewerRepository(ReviewerRepository):
    """Reviewer names in insertion order."""

    def __init__(self, database: SQLiteDatabase):
        super().__init__()
        self.db = database

    def get_by_id(self, id: str) -> Optional[Reviewer]:
        with ErrorContext("get_reviewer", convert_to=RepositoryError):
            with self.db.reading() as conn:
                row = conn.execute("SELECT name FROM reviewers WHERE name = ?", (id,)).fetchone()
        return Reviewer(name=row["name"]) if row else None

    def find_all(self) -> List[Reviewer]:
        with ErrorContext("list_reviewers", convert_to=RepositoryError):
            with self.db.reading() as conn:
                rows = conn.execute("SELECT name FROM reviewers ORDER BY seq").fetchall()
        return [Reviewer(name=row["name"]) for row in rows]

    def create(self, item: Reviewer) -> Reviewer:
        with ErrorContext("create_reviewer", convert_to=RepositoryError):
            with self.db.transaction() as conn:
                taken = conn.execute(
                    "SELECT 1 FROM reviewers WHERE name = ?", (item.name,)
                ).fetchone()
                if taken:
                    raise DuplicateKeyError(
                        f"Reviewer {item.name} already exists", key="name", value=item.name
                    )
                conn.execute("INSERT INTO reviewers (name) VALUES (?)", (item.name,))
        return Reviewer(name=item.name)
