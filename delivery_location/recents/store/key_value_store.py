from abc import ABC, abstractmethod
from threading import Lock
from typing import Dict, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine


class KeyValueStore(ABC):
    """Local persistent string store scoped by namespace key."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass


class InMemoryKeyValueStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})
        self._lock = Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value


class SqlKeyValueStore(KeyValueStore):
    """
    SQLAlchemy-backed store (SQLite file by default).
    Writes are serialized with a lock for hosts that share one instance across threads.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self._lock = Lock()
        self.ensure_schema()

    @classmethod
    def from_url(cls, url: str) -> "SqlKeyValueStore":
        engine = create_engine(url, pool_pre_ping=True, future=True)
        return cls(engine)

    def ensure_schema(self) -> None:
        with self.engine.begin() as conn:
            conn.execute(
                text(
                    """
                    CREATE TABLE IF NOT EXISTS local_kv (
                        namespace_key TEXT PRIMARY KEY,
                        value TEXT NOT NULL
                    )
                    """
                )
            )

    def get(self, key: str) -> Optional[str]:
        with self.engine.connect() as conn:
            row = conn.execute(
                text("SELECT value FROM local_kv WHERE namespace_key = :key"),
                {"key": key},
            ).first()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        with self._lock, self.engine.begin() as conn:
            conn.execute(
                text(
                    """
                    INSERT INTO local_kv (namespace_key, value)
                    VALUES (:key, :value)
                    ON CONFLICT (namespace_key) DO UPDATE SET value = excluded.value
                    """
                ),
                {"key": key, "value": value},
            )
