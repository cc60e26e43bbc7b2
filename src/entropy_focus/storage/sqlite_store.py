# src/entropy_focus/storage/sqlite_store.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import sqlite3
from pathlib import Path

from ..tasks.task_models import (
    DEFAULT_LISTS,
    EntropyReason,
    ListType,
    LogEntry,
    LogType,
    Task,
    TaskList,
    TaskStatus,
    UserSettings,
)

logger = logging.getLogger(__name__)


class SqliteStore:
    """
    SQLite durable store (implements the DurableStore port).

    Column names match the desktop app's tables so existing databases open
    unchanged:
      tasks(id, listId, title, estimate, completedPomodoros, failedPomodoros,
            parentId, createdAt, status, isProject, sortOrder)
      logs(id, taskId, taskTitle, type, timestamp, entropyReason, duration)

    The schema is migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each method opens its own SQLite connection; async methods run the
      sync helpers in a worker thread.
    """

    def __init__(self, db_path: str | Path = "entropy.db") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except sqlite3.Error:
            total = -1
        logger.info("SqliteStore ready db=%s tasks=%s", self._db_path, total)

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS lists (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    type TEXT NOT NULL,
                    icon TEXT
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    listId TEXT NOT NULL,
                    title TEXT NOT NULL,
                    estimate INTEGER NOT NULL,
                    completedPomodoros INTEGER NOT NULL DEFAULT 0,
                    failedPomodoros INTEGER NOT NULL DEFAULT 0,
                    parentId TEXT,
                    createdAt INTEGER NOT NULL,
                    status TEXT NOT NULL DEFAULT 'active',
                    isProject INTEGER DEFAULT 0,
                    sortOrder INTEGER DEFAULT 0,
                    FOREIGN KEY (listId) REFERENCES lists(id)
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS logs (
                    id TEXT PRIMARY KEY,
                    taskId TEXT NOT NULL,
                    taskTitle TEXT NOT NULL,
                    type TEXT NOT NULL,
                    timestamp INTEGER NOT NULL,
                    entropyReason TEXT,
                    duration INTEGER
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )

            # Migrations (safe): older databases predate these columns.
            def add_col(table: str, name: str, decl: str) -> None:
                cur.execute(f"PRAGMA table_info({table})")
                cols = {row["name"] for row in cur.fetchall()}
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE {table} ADD COLUMN {name} {decl}")
                logger.info("SqliteStore migration: added column %s.%s", table, name)

            add_col("tasks", "isProject", "INTEGER DEFAULT 0")
            add_col("tasks", "sortOrder", "INTEGER DEFAULT 0")
            add_col("logs", "duration", "INTEGER")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_bucket ON tasks(listId, parentId, sortOrder)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_logs_ts ON logs(timestamp)")

            cur.execute("SELECT COUNT(*) FROM lists")
            (n_lists,) = cur.fetchone()
            if int(n_lists) == 0:
                cur.executemany(
                    "INSERT INTO lists (id, name, type, icon) VALUES (?, ?, ?, ?)",
                    [(lst.id, lst.name, lst.type.value, lst.icon) for lst in DEFAULT_LISTS],
                )
                logger.info("SqliteStore: inserted default lists")

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=str(row["id"]),
            list_id=str(row["listId"]),
            title=str(row["title"] or ""),
            estimate=int(row["estimate"] or 0),
            completed_pomodoros=int(row["completedPomodoros"] or 0),
            failed_pomodoros=int(row["failedPomodoros"] or 0),
            parent_id=row["parentId"] or None,
            created_at=int(row["createdAt"] or 0),
            status=TaskStatus.from_db(row["status"]),
            is_project=bool(row["isProject"]),
            sort_order=int(row["sortOrder"] or 0),
        )

    @staticmethod
    def _row_to_log(row: sqlite3.Row) -> LogEntry | None:
        try:
            log_type = LogType(row["type"])
        except ValueError:
            logger.warning("Skipping log row id=%s with unknown type %r", row["id"], row["type"])
            return None

        reason: EntropyReason | None = None
        if row["entropyReason"]:
            try:
                reason = EntropyReason(row["entropyReason"])
            except ValueError:
                reason = None

        return LogEntry(
            id=str(row["id"]),
            timestamp=int(row["timestamp"] or 0),
            type=log_type,
            task_id=str(row["taskId"]),
            task_title=str(row["taskTitle"] or ""),
            entropy_reason=reason,
            duration=int(row["duration"]) if row["duration"] is not None else None,
        )

    # ---- sync API ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT COUNT(*) FROM tasks")
            (n,) = cur.fetchone()
            return int(n)
        finally:
            conn.close()

    def get_lists(self) -> list[TaskList]:
        conn = self._get_conn()
        try:
            out: list[TaskList] = []
            for row in conn.execute("SELECT * FROM lists"):
                try:
                    list_type = ListType(row["type"])
                except ValueError:
                    list_type = ListType.USER
                out.append(TaskList(id=str(row["id"]), name=str(row["name"]), type=list_type, icon=row["icon"]))
            return out
        finally:
            conn.close()

    def get_tasks(self) -> list[Task]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT * FROM tasks ORDER BY sortOrder ASC, createdAt ASC").fetchall()
            return [self._row_to_task(r) for r in rows]
        finally:
            conn.close()

    def get_logs(self) -> list[LogEntry]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT * FROM logs ORDER BY timestamp ASC").fetchall()
            return [e for e in (self._row_to_log(r) for r in rows) if e is not None]
        finally:
            conn.close()

    def get_settings(self) -> UserSettings | None:
        conn = self._get_conn()
        try:
            rows = {str(r["key"]): r["value"] for r in conn.execute("SELECT key, value FROM settings")}
        finally:
            conn.close()
        if not rows:
            return None
        return UserSettings.from_rows(rows)

    def put_task(self, task: Task) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT OR REPLACE INTO tasks (
                    id, listId, title, estimate, completedPomodoros, failedPomodoros,
                    parentId, createdAt, status, isProject, sortOrder
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    task.id,
                    task.list_id,
                    task.title,
                    int(task.estimate),
                    int(task.completed_pomodoros),
                    int(task.failed_pomodoros),
                    task.parent_id,
                    int(task.created_at),
                    task.status.value,
                    1 if task.is_project else 0,
                    int(task.sort_order),
                ),
            )
            conn.commit()
            logger.debug("Task saved id=%s status=%s sort_order=%s", task.id, task.status.value, task.sort_order)
        finally:
            conn.close()

    def put_log(self, entry: LogEntry) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO logs (id, taskId, taskTitle, type, timestamp, entropyReason, duration)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.id,
                    entry.task_id,
                    entry.task_title,
                    entry.type.value,
                    int(entry.timestamp),
                    entry.entropy_reason.value if entry.entropy_reason else None,
                    entry.duration,
                ),
            )
            conn.commit()
        finally:
            conn.close()

    def put_settings(self, settings: UserSettings) -> None:
        conn = self._get_conn()
        try:
            conn.executemany(
                "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
                list(settings.to_rows().items()),
            )
            conn.commit()
        finally:
            conn.close()

    # ---- DurableStore (async) ----

    async def load_lists(self) -> list[TaskList]:
        return await asyncio.to_thread(self.get_lists)

    async def load_tasks(self) -> list[Task]:
        return await asyncio.to_thread(self.get_tasks)

    async def load_logs(self) -> list[LogEntry]:
        return await asyncio.to_thread(self.get_logs)

    async def load_settings(self) -> UserSettings | None:
        return await asyncio.to_thread(self.get_settings)

    async def save_task(self, task: Task) -> None:
        await asyncio.to_thread(self.put_task, task)

    async def append_log(self, entry: LogEntry) -> None:
        await asyncio.to_thread(self.put_log, entry)

    async def save_settings(self, settings: UserSettings) -> None:
        await asyncio.to_thread(self.put_settings, settings)
