"""Message history used to seed the sliding window at startup."""

import sqlite3
from abc import ABC, abstractmethod
from contextlib import closing
from typing import Optional

from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from cbdedup.exceptions import HistoryStoreError
from cbdedup.schemas import BroadcastMessage, Location, MessageFormat


class HistoryRow(BaseModel):
    """One delivered broadcast as read back from history.

    Every column may be missing; ``None`` marks it absent.
    """

    location: Location = Field(default_factory=Location)
    service_category: Optional[int] = None
    serial_number: Optional[int] = None
    message_body: Optional[str] = None
    delivery_time: Optional[int] = None
    message_format: Optional[MessageFormat] = None


class HistoryStore(ABC):
    """Durable record of broadcasts that were shown to the user."""

    @abstractmethod
    def recent(self, since_ms: int) -> list[HistoryRow]:
        """Rows delivered strictly after ``since_ms``, newest first."""
        pass

    @abstractmethod
    def insert(self, message: BroadcastMessage) -> None:
        """Persist a delivered broadcast."""
        pass


class SqliteHistoryStore(HistoryStore):
    """History kept in a local SQLite database."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self.init_db()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path, timeout=10, isolation_level=None)

    def init_db(self) -> None:
        try:
            with closing(self._connect()) as conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS broadcasts(
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        plmn TEXT,
                        lac INTEGER,
                        cid INTEGER,
                        service_category INTEGER,
                        serial_number INTEGER,
                        message_body TEXT,
                        message_format TEXT,
                        delivery_time INTEGER
                    );
                """)
                conn.execute(
                    "CREATE INDEX IF NOT EXISTS broadcasts_time_idx ON broadcasts(delivery_time DESC);"
                )
        except sqlite3.Error as e:
            raise HistoryStoreError(f"Cannot open history database {self.db_path}: {e}") from e

    def insert(self, message: BroadcastMessage) -> None:
        try:
            with closing(self._connect()) as conn:
                conn.execute(
                    """INSERT INTO broadcasts(plmn, lac, cid, service_category, serial_number,
                                              message_body, message_format, delivery_time)
                       VALUES(?,?,?,?,?,?,?,?)""",
                    (
                        message.location.plmn,
                        message.location.lac,
                        message.location.cid,
                        message.service_category,
                        message.serial_number,
                        message.body,
                        message.message_format.value,
                        message.delivery_time,
                    ),
                )
        except sqlite3.Error as e:
            raise HistoryStoreError(f"Cannot write to history database {self.db_path}: {e}") from e

    def recent(self, since_ms: int) -> list[HistoryRow]:
        try:
            with closing(self._connect()) as conn:
                rows = conn.execute(
                    """SELECT plmn, lac, cid, service_category, serial_number,
                              message_body, message_format, delivery_time
                       FROM broadcasts
                       WHERE delivery_time > ?
                       ORDER BY delivery_time DESC""",
                    (since_ms,),
                ).fetchall()
        except sqlite3.Error as e:
            raise HistoryStoreError(f"Cannot read history database {self.db_path}: {e}") from e

        history = []
        for row in rows:
            try:
                history.append(self._to_row(row))
            except ValidationError as e:
                logger.warning(f"Skipping malformed history row {row!r}: {e}")
        return history

    @staticmethod
    def _to_row(row: tuple) -> HistoryRow:
        plmn, lac, cid, category, serial, body, fmt, delivery_time = row
        message_format = None
        if fmt is not None:
            try:
                message_format = MessageFormat(fmt)
            except ValueError:
                logger.debug(f"Unknown message format in history: {fmt!r}")
        return HistoryRow(
            location=Location(plmn=plmn, lac=lac, cid=cid),
            service_category=category,
            serial_number=serial,
            message_body=body,
            delivery_time=delivery_time,
            message_format=message_format,
        )
