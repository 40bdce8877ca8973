from __future__ import annotations

import hashlib
import logging
import os
import time

from sqlalchemy import event
from sqlalchemy.engine import Engine

SLOW_QUERY_MS = int(os.getenv("DB_SLOW_QUERY_MS", "200"))
MAX_SQL_CHARS = 200

logger = logging.getLogger("obs")


def _shorten(statement: str) -> str:
    sql = " ".join(statement.split())
    if len(sql) > MAX_SQL_CHARS:
        sql = sql[: MAX_SQL_CHARS - 3] + "..."
    return sql


def add_query_logger(engine: Engine, tenant: str) -> None:
    """Attach timing-based logging to ``engine`` for ``tenant``.

    Statements slower than ``DB_SLOW_QUERY_MS`` are logged at WARNING, the
    rest at DEBUG. Parameters are only ever logged as a short hash.
    """
    target = engine.sync_engine if hasattr(engine, "sync_engine") else engine

    def before_cursor_execute(
        conn, cursor, statement, parameters, context, executemany
    ):  # type: ignore[no-untyped-def]
        context._query_start_time = time.perf_counter()

    def after_cursor_execute(
        conn, cursor, statement, parameters, context, executemany
    ):  # type: ignore[no-untyped-def]
        total_ms = (time.perf_counter() - context._query_start_time) * 1000
        params_hash = hashlib.sha256(repr(parameters).encode()).hexdigest()[:8]
        level = logging.WARNING if total_ms > SLOW_QUERY_MS else logging.DEBUG
        if not logger.isEnabledFor(level):
            return
        logger.log(
            level,
            "%s %dms tenant=%s sql=%s params=%s",
            "slow query" if level == logging.WARNING else "query",
            int(total_ms),
            tenant,
            _shorten(statement),
            params_hash,
            extra={"tenant": tenant},
        )

    event.listen(target, "before_cursor_execute", before_cursor_execute)
    event.listen(target, "after_cursor_execute", after_cursor_execute)
