# Overview: Service-layer helpers for all-or-nothing write units.

from __future__ import annotations

from contextlib import contextmanager

from ..extensions import db


def begin_write_transaction() -> None:
    """
    Start the write unit with the database write lock held.

    NOTE: SQLite ignores SELECT ... FOR UPDATE and pysqlite defers BEGIN until
    the first DML; BEGIN IMMEDIATE serializes writers up front. Server
    databases rely on the guarded in-place UPDATEs instead.
    """
    conn = db.session.connection()
    if conn.dialect.name != "sqlite":
        return
    if not conn.connection.dbapi_connection.in_transaction:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


@contextmanager
def atomic():
    """
    Run the body as one database transaction on db.session.

    Commits on success. Any exception rolls back every write made in the
    body and is re-raised unchanged; there are no retries.
    """
    try:
        begin_write_transaction()
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
