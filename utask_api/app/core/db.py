"""
SQLite database integration and simple migration system.

The ``Database`` class is the single store handle of the application.
It is built once from the settings at start-up, stored on
``app.state`` and handed to services through FastAPI dependencies
(``get_db``), so no module keeps a global connection.

Reads go through ``connection()``; anything that writes goes through
``transaction()``, a unit of work that begins with ``BEGIN IMMEDIATE``
(taking SQLite's write lock up front, which serialises concurrent
writers) and either commits every statement or rolls all of them back.

The migration mechanism stores applied migration versions in the
``migrations`` table and executes new migrations in order.
"""

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from fastapi import Request

from .config import Settings


logger = logging.getLogger(__name__)


MIGRATIONS: list[tuple[int, str]] = [
    # Migration 1: Initial schema
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            email TEXT NOT NULL UNIQUE,
            password_hash TEXT NOT NULL,
            city TEXT,
            state TEXT,
            avatar_url TEXT,
            balance REAL NOT NULL DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS categories (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL UNIQUE,
            icon TEXT,
            description TEXT
        );

        CREATE TABLE IF NOT EXISTS services (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL,
            title TEXT NOT NULL,
            description TEXT NOT NULL,
            price REAL NOT NULL,
            date TEXT NOT NULL,
            location TEXT,
            latitude REAL,
            longitude REAL,
            category_id INTEGER,
            status TEXT NOT NULL DEFAULT 'pending',
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(user_id) REFERENCES users(id),
            FOREIGN KEY(category_id) REFERENCES categories(id)
        );

        CREATE TABLE IF NOT EXISTS proposals (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            service_id INTEGER NOT NULL,
            provider_id INTEGER NOT NULL,
            price REAL NOT NULL,
            message TEXT,
            status TEXT NOT NULL DEFAULT 'pending',
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            UNIQUE(service_id, provider_id),
            FOREIGN KEY(service_id) REFERENCES services(id),
            FOREIGN KEY(provider_id) REFERENCES users(id)
        );

        CREATE TABLE IF NOT EXISTS notifications (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL,
            type TEXT NOT NULL,
            title TEXT NOT NULL,
            message TEXT NOT NULL,
            related_id INTEGER,
            read INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(user_id) REFERENCES users(id)
        );

        CREATE TABLE IF NOT EXISTS wallet_transactions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL,
            amount REAL NOT NULL,
            type TEXT NOT NULL CHECK (type IN ('credit', 'debit')),
            description TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(user_id) REFERENCES users(id)
        );
        """,
    ),
    # Migration 2: default categories
    (
        2,
        """
        INSERT OR IGNORE INTO categories (name, icon, description) VALUES
            ('Cleaning', 'broom', 'House and office cleaning'),
            ('Repairs', 'wrench', 'Small repairs and maintenance'),
            ('Electrical', 'bolt', 'Electrical installation and repairs'),
            ('Plumbing', 'droplet', 'Plumbing installation and repairs'),
            ('Moving', 'truck', 'Moving and transport of goods'),
            ('Gardening', 'leaf', 'Garden care and landscaping'),
            ('Tutoring', 'book', 'Private lessons'),
            ('Technology', 'laptop', 'Computer and phone support');
        """,
    ),
    # Migration 3: favourite services
    (
        3,
        """
        CREATE TABLE IF NOT EXISTS favorites (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL,
            service_id INTEGER NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            UNIQUE(user_id, service_id),
            FOREIGN KEY(user_id) REFERENCES users(id),
            FOREIGN KEY(service_id) REFERENCES services(id)
        );
        """,
    ),
    # Migration 4: indices on foreign keys used by listings
    (
        4,
        """
        CREATE INDEX IF NOT EXISTS idx_services_user_id ON services(user_id);
        CREATE INDEX IF NOT EXISTS idx_services_status ON services(status);
        CREATE INDEX IF NOT EXISTS idx_proposals_service_id ON proposals(service_id);
        CREATE INDEX IF NOT EXISTS idx_proposals_provider_id ON proposals(provider_id);
        CREATE INDEX IF NOT EXISTS idx_notifications_user_id ON notifications(user_id);
        CREATE INDEX IF NOT EXISTS idx_wallet_transactions_user_id ON wallet_transactions(user_id);
        CREATE INDEX IF NOT EXISTS idx_favorites_user_id ON favorites(user_id);
        """,
    ),
]


def resolve_database_path(database_url: str) -> str:
    """Compute the path to the SQLite database file.

    Absolute paths are used as is; relative ones are resolved against
    the current working directory.  A ``sqlite:///`` prefix is accepted
    and stripped.
    """
    if database_url.startswith("sqlite:///"):
        database_url = database_url[len("sqlite:///"):]
    path = Path(database_url)
    if path.is_absolute():
        return str(path)
    return str(path.resolve())


class Database:
    """Handle to the SQLite database file."""

    def __init__(self, path: str, timeout: float = 5.0) -> None:
        self.path = path
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(resolve_database_path(settings.database_url), timeout=settings.database_timeout)

    def connect(self) -> sqlite3.Connection:
        """Create and return a new SQLite connection.

        The connection runs in autocommit mode (transactions are opened
        explicitly by ``transaction``), returns rows as ``sqlite3.Row``
        objects and enforces foreign keys, which SQLite leaves disabled
        by default.
        """
        conn = sqlite3.connect(self.path, timeout=self.timeout, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection for reads and close it on exit."""
        conn = self.connect()
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Cursor]:
        """Unit of work: all statements on the cursor commit or none do."""
        conn = self.connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            cursor = conn.cursor()
            try:
                yield cursor
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        finally:
            conn.close()

    def init(self) -> int:
        """Apply pending migrations and return the resulting schema version.

        Each migration runs in its own transaction together with the
        insert into ``migrations``, so a failing migration leaves the
        schema at the previous version.
        """
        with self.connection() as conn:
            conn.execute("CREATE TABLE IF NOT EXISTS migrations (version INTEGER PRIMARY KEY)")
            row = conn.execute("SELECT MAX(version) AS version FROM migrations").fetchone()
            current_version = row["version"] if row and row["version"] is not None else 0

            for version, sql in MIGRATIONS:
                if version <= current_version:
                    continue
                logger.info("Applying migration %s to %s", version, self.path)
                try:
                    conn.executescript(
                        f"BEGIN;\n{sql}\nINSERT INTO migrations (version) VALUES ({version});\nCOMMIT;"
                    )
                except sqlite3.Error:
                    if conn.in_transaction:
                        conn.execute("ROLLBACK")
                    raise
                current_version = version
        return current_version


def get_db(request: Request) -> Database:
    """Dependency returning the store handle created at start-up."""
    return request.app.state.db
