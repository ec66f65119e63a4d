# services/api/adapters/sqlite/__init__.py
from __future__ import annotations

import logging
import os
import sqlite3
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Float,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    delete,
    event,
    func,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.pool import StaticPool

from core.errors import PageAlreadyProcessedError
from core.mark_scheme import NormalizedEntry, mark_scheme_totals
from models import MarkSchemeEntry, Page, RecognitionSettings, Result, Test
from models.converters import (
    row_to_entry,
    row_to_page,
    row_to_result,
    row_to_settings,
    row_to_test,
)

logger = logging.getLogger(__name__)

# ---- Engine (SQLite) with WAL & pragmas -------------------------------------

_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def _ensure_dir(path: str):
    d = os.path.dirname(path)
    if d and not os.path.isdir(d):
        os.makedirs(d, exist_ok=True)


def make_engine(db_url: str) -> Engine:
    if db_url in _MEMORY_URLS:
        # one shared connection, otherwise every checkout sees an empty database
        engine = create_engine(
            db_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        # Create data dir if sqlite file
        if db_url.startswith("sqlite:///"):
            file_path = db_url.replace("sqlite:///", "", 1)
            _ensure_dir(file_path)
        engine = create_engine(db_url, pool_pre_ping=True)

    # Apply pragmas per-connection
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):  # type: ignore
        if isinstance(dbapi_connection, sqlite3.Connection):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL;")
            cursor.execute("PRAGMA synchronous=NORMAL;")
            cursor.execute("PRAGMA foreign_keys=ON;")
            cursor.close()

    return engine

# ---- Schema via SQLAlchemy Core ---------------------------------------------

metadata = MetaData()

tests = Table(
    "tests",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String, nullable=False),
    Column("total_questions", Integer, nullable=False, default=0),
    Column("total_points", Integer, nullable=False, default=0),
)

mark_scheme_entries = Table(
    "mark_scheme_entries",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("test_id", Integer, ForeignKey("tests.id", ondelete="CASCADE"), nullable=False),
    Column("question_number", Integer, nullable=False),
    Column("expected_answer", Text, nullable=False, default=""),
    Column("points", Integer, nullable=False, default=1),
    UniqueConstraint("test_id", "question_number", name="uq_entries_test_question"),
    CheckConstraint("question_number >= 1", name="ck_question_number"),
    CheckConstraint("points >= 0", name="ck_points"),
)

pages = Table(
    "pages",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("test_id", Integer, ForeignKey("tests.id", ondelete="CASCADE"), nullable=False),
    Column("page_number", Integer, nullable=False),
    Column("image_data", Text, nullable=False),
    Column("processed", Boolean, nullable=False, default=False),
    Column("extracted_answers", JSON, nullable=False, default=dict),
    Column("confidence", Float, nullable=True),
)

results = Table(
    "results",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("test_id", Integer, ForeignKey("tests.id", ondelete="CASCADE"), nullable=False),
    Column("student_answers", JSON, nullable=False, default=dict),
    Column("points_earned", Integer, nullable=False),
    Column("total_points", Integer, nullable=False),
    Column("score_percentage", Integer, nullable=False),
    CheckConstraint("score_percentage >= 0 AND score_percentage <= 100", name="ck_score_pct"),
)

recognition_settings = Table(
    "recognition_settings",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("answer_recognition_instructions", Text, nullable=False, default=""),
    Column("enhanced_recognition", Boolean, nullable=False, default=True),
    Column("confidence_threshold", Integer, nullable=False, default=80),
    Column("temperature", Float, nullable=False, default=0.0),
    Column("top_p", Float, nullable=False, default=1.0),
)

Index("idx_entries_test", mark_scheme_entries.c.test_id)
Index("idx_pages_test", pages.c.test_id, pages.c.page_number)
Index("idx_results_test", results.c.test_id)

_SETTINGS_ROW_ID = 1

# ---- Adapter implementation --------------------------------------------------

@dataclass(frozen=True)
class SqliteAdapter:
    engine: Engine
    backend_name: str = "sqlite"

    @classmethod
    def from_url(cls, db_url: str = "sqlite:///data/grader.db") -> "SqliteAdapter":
        eng = make_engine(db_url)
        metadata.create_all(eng)
        return cls(engine=eng)

    # Tests
    def create_test(self, name: str) -> Test:
        with self.engine.begin() as conn:
            res = conn.execute(
                insert(tests).values(name=name, total_questions=0, total_points=0)
            )
            test_id = res.inserted_primary_key[0]
            row = conn.execute(select(tests).where(tests.c.id == test_id)).mappings().one()
            return row_to_test(row)

    def get_test(self, test_id: int) -> Optional[Test]:
        with self.engine.begin() as conn:
            row = conn.execute(select(tests).where(tests.c.id == test_id)).mappings().first()
            return row_to_test(row) if row else None

    def list_tests(self) -> List[Test]:
        with self.engine.begin() as conn:
            rows = conn.execute(select(tests).order_by(tests.c.id.asc())).mappings().all()
            return [row_to_test(r) for r in rows]

    def _require_test(self, conn: Connection, test_id: int) -> None:
        exists = conn.execute(select(tests.c.id).where(tests.c.id == test_id)).first()
        if not exists:
            raise ValueError(f"Test {test_id} not found")

    # Mark scheme
    def _select_mark_scheme(self, conn: Connection, test_id: int) -> List[MarkSchemeEntry]:
        rows = conn.execute(
            select(mark_scheme_entries)
            .where(mark_scheme_entries.c.test_id == test_id)
            .order_by(mark_scheme_entries.c.question_number.asc())
        ).mappings().all()
        return [row_to_entry(r) for r in rows]

    def get_mark_scheme(self, test_id: int) -> List[MarkSchemeEntry]:
        with self.engine.begin() as conn:
            return self._select_mark_scheme(conn, test_id)

    # Replace (atomic): delete old entries, insert new, refresh test totals
    def replace_mark_scheme(
        self,
        test_id: int,
        entries: Sequence[NormalizedEntry],
    ) -> List[MarkSchemeEntry]:
        with self.engine.begin() as conn:
            self._require_test(conn, test_id)

            removed = conn.execute(
                delete(mark_scheme_entries).where(mark_scheme_entries.c.test_id == test_id)
            ).rowcount

            rows = [
                dict(
                    test_id=test_id,
                    question_number=e.question_number,
                    expected_answer=e.expected_answer,
                    points=e.points,
                )
                for e in entries
            ]
            if rows:
                conn.execute(insert(mark_scheme_entries), rows)

            total_questions, total_points = mark_scheme_totals(entries)
            conn.execute(
                update(tests)
                .where(tests.c.id == test_id)
                .values(total_questions=total_questions, total_points=total_points)
            )
            logger.info(
                f"[sqlite] Replaced mark scheme for test {test_id}: "
                f"{removed} removed, {len(rows)} stored"
            )
            return self._select_mark_scheme(conn, test_id)

    # Pages
    def add_page(
        self,
        test_id: int,
        image_data: str,
        page_number: Optional[int] = None,
    ) -> Page:
        with self.engine.begin() as conn:
            self._require_test(conn, test_id)
            if page_number is None:
                current_max = conn.execute(
                    select(func.max(pages.c.page_number)).where(pages.c.test_id == test_id)
                ).scalar()
                page_number = int(current_max or 0) + 1

            res = conn.execute(
                insert(pages).values(
                    test_id=test_id,
                    page_number=page_number,
                    image_data=image_data,
                    processed=False,
                    extracted_answers={},
                    confidence=None,
                )
            )
            page_id = res.inserted_primary_key[0]
            row = conn.execute(select(pages).where(pages.c.id == page_id)).mappings().one()
            return row_to_page(row)

    def get_page(self, page_id: int) -> Optional[Page]:
        with self.engine.begin() as conn:
            row = conn.execute(select(pages).where(pages.c.id == page_id)).mappings().first()
            return row_to_page(row) if row else None

    def list_pages(self, test_id: int) -> List[Page]:
        with self.engine.begin() as conn:
            rows = conn.execute(
                select(pages)
                .where(pages.c.test_id == test_id)
                .order_by(pages.c.page_number.asc(), pages.c.id.asc())
            ).mappings().all()
            return [row_to_page(r) for r in rows]

    def mark_page_processed(
        self,
        page_id: int,
        extracted_answers: Dict[str, str],
        confidence: Optional[float] = None,
    ) -> Page:
        with self.engine.begin() as conn:
            row = conn.execute(select(pages).where(pages.c.id == page_id)).mappings().first()
            if not row:
                raise ValueError(f"Page {page_id} not found")
            if row_to_page(row).processed:
                raise PageAlreadyProcessedError(page_id)

            conn.execute(
                update(pages)
                .where(pages.c.id == page_id)
                .values(
                    processed=True,
                    extracted_answers=dict(extracted_answers),
                    confidence=confidence,
                )
            )
            row = conn.execute(select(pages).where(pages.c.id == page_id)).mappings().one()
            return row_to_page(row)

    def delete_page(self, page_id: int) -> None:
        with self.engine.begin() as conn:
            res = conn.execute(delete(pages).where(pages.c.id == page_id))
            if res.rowcount == 0:
                raise ValueError(f"Page {page_id} not found")

    # Results (latest row per test is the current one)
    def save_result(
        self,
        test_id: int,
        student_answers: Dict[str, str],
        points_earned: int,
        total_points: int,
        score_percentage: int,
    ) -> Result:
        with self.engine.begin() as conn:
            self._require_test(conn, test_id)
            res = conn.execute(
                insert(results).values(
                    test_id=test_id,
                    student_answers=dict(student_answers),
                    points_earned=points_earned,
                    total_points=total_points,
                    score_percentage=score_percentage,
                )
            )
            result_id = res.inserted_primary_key[0]
            row = conn.execute(select(results).where(results.c.id == result_id)).mappings().one()
            return row_to_result(row)

    def get_result(self, test_id: int) -> Optional[Result]:
        with self.engine.begin() as conn:
            row = conn.execute(
                select(results)
                .where(results.c.test_id == test_id)
                .order_by(results.c.id.desc())
                .limit(1)
            ).mappings().first()
            return row_to_result(row) if row else None

    # Recognition settings (single row)
    def get_recognition_settings(self) -> RecognitionSettings:
        with self.engine.begin() as conn:
            row = conn.execute(
                select(recognition_settings).where(recognition_settings.c.id == _SETTINGS_ROW_ID)
            ).mappings().first()
            return row_to_settings(row) if row else RecognitionSettings()

    def update_recognition_settings(self, updates: Dict[str, Any]) -> RecognitionSettings:
        with self.engine.begin() as conn:
            row = conn.execute(
                select(recognition_settings).where(recognition_settings.c.id == _SETTINGS_ROW_ID)
            ).mappings().first()
            current = row_to_settings(row) if row else RecognitionSettings()

            allowed = {k: v for k, v in updates.items() if k in RecognitionSettings.model_fields}
            merged = RecognitionSettings(**{**current.model_dump(), **allowed})

            if row:
                conn.execute(
                    update(recognition_settings)
                    .where(recognition_settings.c.id == _SETTINGS_ROW_ID)
                    .values(**merged.model_dump())
                )
            else:
                conn.execute(
                    insert(recognition_settings).values(id=_SETTINGS_ROW_ID, **merged.model_dump())
                )
            return merged
