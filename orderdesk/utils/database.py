"""
Database connection and query utilities

Provides connection pooling, schema setup and change notifications
for the PostgreSQL order store
"""

import select
import psycopg2
import psycopg2.extensions
from psycopg2.pool import SimpleConnectionPool
from psycopg2.extras import RealDictCursor
from typing import Optional, List, Dict, Any, Tuple
from contextlib import contextmanager
import logging

from orderdesk.utils.config import settings
from orderdesk.utils.errors import StoreError

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS departments (
    name TEXT PRIMARY KEY,
    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now()
);

CREATE TABLE IF NOT EXISTS agents (
    name TEXT NOT NULL,
    department_name TEXT NOT NULL REFERENCES departments(name) ON DELETE CASCADE,
    email TEXT,
    extension TEXT,
    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now(),
    PRIMARY KEY (department_name, name)
);

CREATE TABLE IF NOT EXISTS order_categories (
    name TEXT PRIMARY KEY,
    tasks JSONB NOT NULL DEFAULT '[]'::jsonb,
    position INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS orders (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    type TEXT NOT NULL,
    status TEXT NOT NULL,
    priority TEXT NOT NULL,
    details JSONB NOT NULL DEFAULT '{}'::jsonb,
    tasks JSONB NOT NULL DEFAULT '[]'::jsonb,
    assigned_to TEXT,
    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now(),
    completed_at TIMESTAMP WITH TIME ZONE,
    CONSTRAINT valid_status CHECK (status IN ('unassigned', 'in-progress', 'completed')),
    CONSTRAINT valid_priority CHECK (priority IN ('low', 'medium', 'high'))
);

CREATE TABLE IF NOT EXISTS assignment_history (
    event_id BIGSERIAL PRIMARY KEY,
    order_id TEXT NOT NULL,
    agent_name TEXT NOT NULL,
    kind TEXT NOT NULL DEFAULT 'assigned',
    occurred_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now(),
    CONSTRAINT valid_kind CHECK (kind IN ('assigned', 'completed'))
);

CREATE INDEX IF NOT EXISTS idx_orders_status ON orders(status);
CREATE INDEX IF NOT EXISTS idx_orders_assigned_to ON orders(assigned_to);
CREATE INDEX IF NOT EXISTS idx_agents_department ON agents(department_name);
CREATE INDEX IF NOT EXISTS idx_assignment_history_order ON assignment_history(order_id);

CREATE OR REPLACE FUNCTION notify_orders_changed() RETURNS trigger AS $$
BEGIN
    PERFORM pg_notify('{channel}', COALESCE(NEW.id, OLD.id));
    RETURN NULL;
END;
$$ LANGUAGE plpgsql;

DROP TRIGGER IF EXISTS orders_changed ON orders;
CREATE TRIGGER orders_changed
    AFTER INSERT OR UPDATE OR DELETE ON orders
    FOR EACH ROW EXECUTE FUNCTION notify_orders_changed();
"""


class Database:
    """Database connection manager with connection pooling"""

    def __init__(self):
        """Set up an empty manager; the pool opens on first use"""
        self.pool: Optional[SimpleConnectionPool] = None
        self._listener = None
        self._notifications_seen = 0

    def _initialize_pool(self):
        """Create connection pool"""
        try:
            self.pool = SimpleConnectionPool(
                minconn=settings.DB_MIN_CONNECTIONS,
                maxconn=settings.DB_MAX_CONNECTIONS,
                host=settings.DB_HOST,
                port=settings.DB_PORT,
                database=settings.DB_NAME,
                user=settings.DB_USER,
                password=settings.DB_PASSWORD
            )
            logger.info("Database connection pool initialized")
        except psycopg2.Error as e:
            logger.error(f"Failed to initialize database pool: {e}")
            raise StoreError(f"Database connection failed: {e}") from e

    @contextmanager
    def get_connection(self):
        """
        Context manager for database connections

        Usage:
            with db.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT * FROM orders")
        """
        if self.pool is None:
            self._initialize_pool()
        conn = None
        try:
            conn = self.pool.getconn()
            yield conn
            conn.commit()
        except psycopg2.Error as e:
            if conn:
                conn.rollback()
            logger.error(f"Database error: {e}")
            raise StoreError(str(e)) from e
        except Exception:
            if conn:
                conn.rollback()
            raise
        finally:
            if conn:
                self.pool.putconn(conn)

    @contextmanager
    def get_cursor(self, dict_cursor: bool = True):
        """
        Context manager for database cursors

        Args:
            dict_cursor: If True, returns results as dictionaries
        """
        with self.get_connection() as conn:
            cursor_factory = RealDictCursor if dict_cursor else None
            cursor = conn.cursor(cursor_factory=cursor_factory)
            try:
                yield cursor
            finally:
                cursor.close()

    def execute_query(
        self,
        query: str,
        params: Optional[Tuple] = None,
        fetch_one: bool = False,
        dict_cursor: bool = True
    ) -> Optional[Any]:
        """
        Execute a SELECT query and return results

        Args:
            query: SQL query string
            params: Query parameters
            fetch_one: If True, return single row; otherwise return all rows
            dict_cursor: If True, return results as dictionaries

        Returns:
            Query results (single row, list of rows, or None)
        """
        with self.get_cursor(dict_cursor=dict_cursor) as cursor:
            cursor.execute(query, params)
            if fetch_one:
                return cursor.fetchone()
            return cursor.fetchall()

    def execute_update(
        self,
        query: str,
        params: Optional[Tuple] = None
    ) -> int:
        """
        Execute an INSERT/UPDATE/DELETE query

        Returns:
            Number of rows affected
        """
        with self.get_cursor(dict_cursor=False) as cursor:
            cursor.execute(query, params)
            return cursor.rowcount

    def initialize_schema(self):
        """Create tables, indexes and the change-notification trigger"""
        with self.get_cursor(dict_cursor=False) as cursor:
            cursor.execute(SCHEMA_SQL.replace("{channel}", settings.CHANGE_CHANNEL))
        logger.info("Database schema initialized")

    def listen(self, channel: Optional[str] = None):
        """Open a dedicated autocommit connection subscribed to a NOTIFY channel"""
        channel = channel or settings.CHANGE_CHANNEL
        try:
            if self._listener is None:
                self._listener = psycopg2.connect(
                    host=settings.DB_HOST,
                    port=settings.DB_PORT,
                    database=settings.DB_NAME,
                    user=settings.DB_USER,
                    password=settings.DB_PASSWORD
                )
                self._listener.set_isolation_level(psycopg2.extensions.ISOLATION_LEVEL_AUTOCOMMIT)
            with self._listener.cursor() as cursor:
                cursor.execute(f"LISTEN {channel};")
        except psycopg2.Error as e:
            logger.error(f"Failed to listen on {channel}: {e}")
            raise StoreError(str(e)) from e
        logger.info(f"Listening for notifications on {channel}")

    def poll_notifications(self, timeout: float = 0.0) -> List[Dict[str, Any]]:
        """
        Wait up to `timeout` seconds for notifications on the listener connection

        Returns:
            List of {'channel', 'payload'} dicts, empty when nothing arrived
        """
        if self._listener is None:
            self.listen()
        ready, _, _ = select.select([self._listener], [], [], timeout)
        if not ready:
            return []
        try:
            self._listener.poll()
        except psycopg2.Error as e:
            logger.error(f"Failed to poll notifications: {e}")
            raise StoreError(str(e)) from e
        notifications = []
        while self._listener.notifies:
            notify = self._listener.notifies.pop(0)
            notifications.append({'channel': notify.channel, 'payload': notify.payload})
        self._notifications_seen += len(notifications)
        return notifications

    def notification_count(self) -> int:
        """
        Notifications received so far by this process

        Each subscriber compares this against its own last-seen count.
        Starts listening on first use.
        """
        if self._listener is None:
            self.listen()
        return self._notifications_seen

    def close(self):
        """Close all database connections in the pool"""
        if self._listener is not None:
            self._listener.close()
            self._listener = None
        if self.pool:
            self.pool.closeall()
            self.pool = None
            logger.info("Database connection pool closed")


# Global database instance
db = Database()
