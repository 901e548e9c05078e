# core/sqlstore.py
"""
Key-tree store persisted through SQLAlchemy: one row per leaf
(``path`` -> JSON scalar). Works on PostgreSQL (psycopg2) and SQLite.
"""
from __future__ import annotations
import json
import logging
from typing import Any, Callable, Dict, TypeVar, Union

from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, delete, func, insert, or_, select, true
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from budget_api.core.errors import StoreError
from budget_api.core.store import BaseStore, ancestors, denormalize, flatten, normalize_path, split_path

T = TypeVar("T")

metadata = MetaData()

store_nodes = Table(
    "store_nodes",
    metadata,
    Column("path", String(768), primary_key=True),
    Column("value", Text, nullable=False),
)


class SqlStore(BaseStore):
    def __init__(self, bind: Union[str, Engine]):
        super().__init__()
        self.engine = create_engine(bind, pool_pre_ping=True) if isinstance(bind, str) else bind
        self._guard(lambda: metadata.create_all(self.engine), "esquema")

    def _guard(self, fn: Callable[[], T], what: str) -> T:
        try:
            return fn()
        except SQLAlchemyError as e:
            logging.getLogger("uvicorn.error").exception("Falló el almacén (%s)", what)
            raise StoreError(f"Falló el almacén ({what}): {e}") from e

    @staticmethod
    def _subtree(path: str):
        """Rows at ``path`` or below it."""
        if not path:
            return true()
        prefix = path + "/"
        return or_(
            store_nodes.c.path == path,
            func.substr(store_nodes.c.path, 1, len(prefix)) == prefix,
        )

    def get(self, path: str) -> Any:
        path = normalize_path(path)
        stmt = select(store_nodes.c.path, store_nodes.c.value).where(self._subtree(path))

        def run():
            with self.engine.connect() as conn:
                return conn.execute(stmt).all()

        rows = self._guard(run, "lectura")
        if not rows:
            return None
        tree: Dict[str, Any] = {}
        for row_path, raw in rows:
            value = json.loads(raw)
            if row_path == path:
                return value
            rel = split_path(row_path[len(path) + 1:] if path else row_path)
            node = tree
            for part in rel[:-1]:
                node = node.setdefault(part, {})
            node[rel[-1]] = value
        return denormalize(tree)

    def _write(self, changes: Dict[str, Any]) -> None:
        rows = [
            {"path": leaf_path, "value": json.dumps(leaf, ensure_ascii=False)}
            for path, value in changes.items()
            for leaf_path, leaf in flatten(value, path).items()
        ]

        def run():
            with self.engine.begin() as conn:
                for path in changes:
                    conn.execute(delete(store_nodes).where(self._subtree(path)))
                    above = ancestors(path)
                    if above:
                        conn.execute(delete(store_nodes).where(store_nodes.c.path.in_(above)))
                if rows:
                    conn.execute(insert(store_nodes), rows)

        self._guard(run, "escritura")
