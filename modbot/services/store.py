"""Entity store for chats and module settings.

Provides a small document store keyed by entity kind ("chats",
"command_settings"). Entities are plain dicts; every saved entity gets an
integer ``id``. The SQLite implementation keeps one JSON document per row and
runs its queries in a worker thread so the event loop is never blocked.
"""

import asyncio
import copy
import itertools
import json
import logging
import sqlite3
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol

from ..core.errors import StoreError

logger = logging.getLogger(__name__)

Entity = dict[str, Any]


class EntityStore(Protocol):
    """Interface of the persistence collaborator."""

    async def find(self, kind: str, where: Mapping[str, Any] | None = None) -> list[Entity]: ...

    async def find_one(self, kind: str, where: Mapping[str, Any]) -> Entity | None: ...

    async def save(self, kind: str, entity: Mapping[str, Any]) -> Entity: ...

    async def remove(self, kind: str, entity: Mapping[str, Any]) -> bool: ...

    async def delete(self, kind: str, where: Mapping[str, Any]) -> int: ...


def _matches(entity: Mapping[str, Any], where: Mapping[str, Any] | None) -> bool:
    if not where:
        return True
    return all(entity.get(key) == value for key, value in where.items())


class MemoryEntityStore:
    """In-process store used by tests and ephemeral runs."""

    def __init__(self) -> None:
        self._entities: dict[str, dict[int, Entity]] = {}
        self._ids = itertools.count(1)

    async def find(self, kind: str, where: Mapping[str, Any] | None = None) -> list[Entity]:
        return [
            copy.deepcopy(entity)
            for entity in self._entities.get(kind, {}).values()
            if _matches(entity, where)
        ]

    async def find_one(self, kind: str, where: Mapping[str, Any]) -> Entity | None:
        found = await self.find(kind, where)
        return found[0] if found else None

    async def save(self, kind: str, entity: Mapping[str, Any]) -> Entity:
        saved = copy.deepcopy(dict(entity))
        if saved.get("id") is None:
            saved["id"] = next(self._ids)
        self._entities.setdefault(kind, {})[saved["id"]] = saved
        return copy.deepcopy(saved)

    async def remove(self, kind: str, entity: Mapping[str, Any]) -> bool:
        return self._entities.get(kind, {}).pop(entity.get("id"), None) is not None

    async def delete(self, kind: str, where: Mapping[str, Any]) -> int:
        table = self._entities.get(kind, {})
        ids = [entity_id for entity_id, entity in table.items() if _matches(entity, where)]
        for entity_id in ids:
            del table[entity_id]
        return len(ids)


class SQLiteEntityStore:
    """SQLite-backed entity store.

    Attributes:
        db_path: Path to SQLite database file.
    """

    def __init__(self, db_path: str = "data/modbot.db"):
        """Initialize the store and create the schema.

        Args:
            db_path: Path to SQLite database file.

        Raises:
            StoreError: If the database cannot be created.
        """
        self.db_path = db_path

        # Create data directory if it doesn't exist
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self._init_database()
        logger.info(f"Entity store initialized with database: {db_path}")

    def _init_database(self) -> None:
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS entities (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        kind TEXT NOT NULL,
                        data TEXT NOT NULL,
                        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    )
                """)

                conn.execute("""
                    CREATE INDEX IF NOT EXISTS idx_kind
                    ON entities(kind)
                """)

                conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Cannot initialize database {self.db_path}: {e}") from e

    async def find(self, kind: str, where: Mapping[str, Any] | None = None) -> list[Entity]:
        return await asyncio.to_thread(self._find, kind, where)

    async def find_one(self, kind: str, where: Mapping[str, Any]) -> Entity | None:
        found = await self.find(kind, where)
        return found[0] if found else None

    async def save(self, kind: str, entity: Mapping[str, Any]) -> Entity:
        return await asyncio.to_thread(self._save, kind, dict(entity))

    async def remove(self, kind: str, entity: Mapping[str, Any]) -> bool:
        if entity.get("id") is None:
            return False
        return await asyncio.to_thread(self._delete_ids, kind, [entity["id"]]) > 0

    async def delete(self, kind: str, where: Mapping[str, Any]) -> int:
        found = await self.find(kind, where)
        if not found:
            return 0
        return await asyncio.to_thread(self._delete_ids, kind, [entity["id"] for entity in found])

    def _find(self, kind: str, where: Mapping[str, Any] | None) -> list[Entity]:
        try:
            with sqlite3.connect(self.db_path) as conn:
                rows = conn.execute(
                    "SELECT id, data FROM entities WHERE kind = ? ORDER BY id", (kind,)
                ).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to read {kind}: {e}") from e

        entities = []
        for entity_id, data in rows:
            entity = json.loads(data)
            entity["id"] = entity_id
            if _matches(entity, where):
                entities.append(entity)
        return entities

    def _save(self, kind: str, entity: Entity) -> Entity:
        entity_id = entity.pop("id", None)
        data = json.dumps(entity, default=str)

        try:
            with sqlite3.connect(self.db_path) as conn:
                updated = 0
                if entity_id is not None:
                    cursor = conn.execute(
                        """
                        UPDATE entities SET data = ?, updated_at = CURRENT_TIMESTAMP
                        WHERE id = ? AND kind = ?
                        """,
                        (data, entity_id, kind),
                    )
                    updated = cursor.rowcount
                if not updated:
                    cursor = conn.execute(
                        "INSERT INTO entities (id, kind, data) VALUES (?, ?, ?)",
                        (entity_id, kind, data),
                    )
                    entity_id = cursor.lastrowid
                conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to save {kind}: {e}") from e

        entity["id"] = entity_id
        return entity

    def _delete_ids(self, kind: str, ids: list[int]) -> int:
        placeholders = ", ".join("?" for _ in ids)
        try:
            with sqlite3.connect(self.db_path) as conn:
                cursor = conn.execute(
                    f"DELETE FROM entities WHERE kind = ? AND id IN ({placeholders})",
                    (kind, *ids),
                )
                conn.commit()
                return cursor.rowcount
        except sqlite3.Error as e:
            raise StoreError(f"Failed to delete {kind}: {e}") from e
