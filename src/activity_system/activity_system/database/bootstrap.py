"""Apply ``database/schema.sql`` to the configured MySQL database."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterator, Mapping

import mysql.connector

from .connection import DBConfig

logger = logging.getLogger(__name__)

# The schema file names its own database; the configured one wins.
_DB_DIRECTIVE = re.compile(r"^\s*(CREATE\s+DATABASE|USE)\b", re.IGNORECASE)


def split_statements(sql: str) -> Iterator[str]:
    """Yield statements of a SQL script; ``;`` inside quotes and ``--`` comments are skipped."""
    current: list[str] = []
    quote = None
    for line in sql.splitlines():
        if quote is None and line.lstrip().startswith("--"):
            continue
        i = 0
        while i < len(line):
            ch = line[i]
            if quote:
                if ch == "\\":
                    current.append(line[i : i + 2])
                    i += 2
                    continue
                if ch == quote:
                    quote = None
            elif ch in ("'", '"', "`"):
                quote = ch
            elif ch == ";":
                stmt = "".join(current).strip()
                current = []
                if stmt:
                    yield stmt
                i += 1
                continue
            current.append(ch)
            i += 1
        current.append("\n")

    tail = "".join(current).strip()
    if tail:
        yield tail


def _server_connection(config: DBConfig, *, with_database: bool = True):
    kwargs = dict(host=config.host, port=config.port, user=config.user, password=config.password, charset=config.charset)
    if with_database:
        kwargs["database"] = config.database
    return mysql.connector.connect(**kwargs)


def ensure_database_exists(db_config: Mapping) -> None:
    config = DBConfig.from_settings(db_config)
    conn = _server_connection(config, with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{config.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: Mapping, *, schema_path: str | Path) -> int:
    """Create the database if needed and run every statement; returns the statement count."""
    config = DBConfig.from_settings(db_config)
    ensure_database_exists(db_config)

    statements = [
        s for s in split_statements(Path(schema_path).read_text(encoding="utf-8")) if not _DB_DIRECTIVE.match(s)
    ]
    conn = _server_connection(config)
    try:
        cur = conn.cursor()
        for stmt in statements:
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()
    logger.info("Applied %d schema statements to %s", len(statements), config.database)
    return len(statements)


def list_tables(db_config: Mapping) -> list[str]:
    config = DBConfig.from_settings(db_config)
    conn = _server_connection(config)
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return sorted(row[0] for row in cur.fetchall())
    finally:
        conn.close()
