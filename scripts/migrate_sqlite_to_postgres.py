from __future__ import annotations

import argparse
import sqlite3
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from todo_api.app.storage import PostgresTaskStorage


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Migrate tasks from a SQLite DB file to a PostgreSQL database."
    )
    parser.add_argument(
        "--sqlite-path",
        type=Path,
        default=Path("data/tasks.db"),
        help="Path to source SQLite database file (default: data/tasks.db).",
    )
    parser.add_argument(
        "--database-url",
        type=str,
        required=True,
        help="PostgreSQL connection URL.",
    )
    return parser.parse_args()


def _parse_datetime(raw: str | None) -> datetime | None:
    if raw is None:
        return None
    parsed = datetime.fromisoformat(raw)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def load_rows(sqlite_path: Path) -> list[dict[str, Any]]:
    """Read task rows without modifying the source file.

    Older files lack the ``completed``/``updated_at`` columns; those default to
    ``False`` and the creation time.
    """
    if not sqlite_path.exists():
        raise FileNotFoundError(f"SQLite file not found: {sqlite_path}")
    with sqlite3.connect(sqlite_path) as conn:
        conn.row_factory = sqlite3.Row
        columns = {row["name"] for row in conn.execute("PRAGMA table_info(tasks)")}
        completed_expr = "completed" if "completed" in columns else "0"
        updated_expr = "updated_at" if "updated_at" in columns else "NULL"
        rows = conn.execute(f"""
            SELECT
                id,
                text,
                {completed_expr} AS completed,
                created_at,
                {updated_expr} AS updated_at
            FROM tasks
            ORDER BY id
            """).fetchall()

    output: list[dict[str, Any]] = []
    for row in rows:
        created_at = _parse_datetime(row["created_at"])
        output.append(
            {
                "id": int(row["id"]),
                "text": str(row["text"]).strip(),
                "completed": bool(row["completed"]),
                "created_at": created_at,
                "updated_at": _parse_datetime(row["updated_at"]) or created_at,
            }
        )
    return output


def migrate(*, sqlite_path: Path, database_url: str) -> int:
    rows = load_rows(sqlite_path)

    # Reuse the app's schema so migrated data is served as-is.
    schema_storage = PostgresTaskStorage(database_url)
    try:
        schema_storage.migrate()
    finally:
        schema_storage.close()

    import psycopg

    with psycopg.connect(database_url) as conn:
        for row in rows:
            conn.execute(
                """
                INSERT INTO tasks (id, text, completed, created_at, updated_at)
                VALUES (%s, %s, %s, %s, %s)
                ON CONFLICT (id) DO UPDATE
                SET text = EXCLUDED.text,
                    completed = EXCLUDED.completed,
                    created_at = EXCLUDED.created_at,
                    updated_at = EXCLUDED.updated_at
                """,
                (
                    row["id"],
                    row["text"],
                    row["completed"],
                    row["created_at"],
                    row["updated_at"],
                ),
            )
        # Explicit ids bypass BIGSERIAL, so move the sequence past them.
        conn.execute("""
            SELECT setval(
                pg_get_serial_sequence('tasks', 'id'),
                COALESCE((SELECT MAX(id) FROM tasks), 0) + 1,
                false
            )
            """)
        conn.commit()

    return len(rows)


def main() -> None:
    args = _parse_args()
    migrated = migrate(sqlite_path=args.sqlite_path, database_url=args.database_url)
    print(f"Migrated {migrated} task row(s) from {args.sqlite_path} to PostgreSQL database.")


if __name__ == "__main__":
    main()
