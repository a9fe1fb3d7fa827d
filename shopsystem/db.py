"""SQLite storage for products, product types and their images."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import Iterator

DEFAULT_DB_PATH = "../databases/scr/shop-system.db"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS products_type (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    products_type_name TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS products (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name_products TEXT NOT NULL,
    price REAL NOT NULL DEFAULT 0,
    detail TEXT,
    stock INTEGER NOT NULL DEFAULT 0,
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    products_type_id INTEGER
);
CREATE TABLE IF NOT EXISTS images (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    image_path TEXT NOT NULL,
    product_id INTEGER,
    product_type_id INTEGER
);
"""


def connect(path) -> sqlite3.Connection:
    """Open the database at ``path``, creating the file if it is missing.

    The connection runs in autocommit mode; use :func:`transaction` to group
    statements.
    """
    conn = sqlite3.connect(str(path), isolation_level=None, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def create_schema(conn) -> None:
    """Create the shop tables if they do not exist yet."""
    conn.executescript(_SCHEMA)


@contextmanager
def transaction(conn) -> Iterator[sqlite3.Connection]:
    """Run the enclosed statements in one transaction, rolling back on error."""
    conn.execute("BEGIN")
    try:
        yield conn
    except BaseException:
        conn.rollback()
        raise
    else:
        conn.commit()