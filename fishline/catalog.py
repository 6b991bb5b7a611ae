"""Read-only item catalog backed by SAP Business One.

Orders reference SAP item codes (``item_entrada`` / ``item_saida``).  The
catalog only lists them for the order form; nothing here writes to SAP.
Item lists are cached per process in a :class:`TTLCache` owned by the
:class:`ItemCatalog`, which ``create_app`` builds once and keeps in
``app.extensions["item_catalog"]``.
"""

from __future__ import annotations

import time
from datetime import datetime

from flask import current_app
from sqlalchemy import bindparam, create_engine, text
from sqlalchemy.exc import SQLAlchemyError

from .errors import InfrastructureError
from .utils import fmt_ts

INPUT_ITEM_GROUPS = (102, 195)
OUTPUT_ITEM_GROUPS = (101, 195)

ITEMS_QUERY = text(
    """
    SELECT TOP (:limit)
        ItemCode AS codigo,
        ItemName AS nome,
        InvntryUom AS unidade,
        LastPurPrc AS ultimo_custo,
        ItmsGrpCod AS grupo_item,
        IWeight1 AS peso,
        validFor AS ativo
    FROM OITM
    WHERE ItmsGrpCod IN :grupos
      AND validFor = 'Y'
    ORDER BY ItemName
    """
).bindparams(bindparam("grupos", expanding=True))


class TTLCache:
    """Values kept for ``ttl_seconds`` after they were set."""

    def __init__(self, ttl_seconds: float, clock=time.monotonic):
        self.ttl = ttl_seconds
        self._clock = clock
        self._entries = {}

    def get(self, key):
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at >= self.ttl:
            del self._entries[key]
            return None
        return value

    def set(self, key, value):
        self._entries[key] = (self._clock(), value)

    def remaining(self, key) -> float:
        entry = self._entries.get(key)
        if entry is None:
            return 0.0
        return max(self.ttl - (self._clock() - entry[0]), 0.0)

    def clear(self):
        self._entries.clear()


class SapItemSource:
    """Queries OITM on the SAP B1 SQL Server through SQLAlchemy."""

    def __init__(self, url: str, limit: int = 9999):
        self.url = url
        self.limit = limit
        self._engine = None

    @property
    def engine(self):
        if not self.url:
            raise InfrastructureError("Integração SAP não configurada (SAP_DATABASE_URL)")
        if self._engine is None:
            self._engine = create_engine(self.url, pool_pre_ping=True)
        return self._engine

    def fetch_items(self, groups):
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(ITEMS_QUERY, {"limit": self.limit, "grupos": list(groups)}).mappings().all()
        except SQLAlchemyError as e:
            raise InfrastructureError(f"Falha conexão SAP: {e}")
        return [dict(r) for r in rows]

    def ping(self):
        try:
            with self.engine.connect() as conn:
                return conn.execute(text("SELECT GETDATE() AS data_servidor")).scalar_one()
        except SQLAlchemyError as e:
            raise InfrastructureError(f"Falha conexão SAP: {e}")


class ItemCatalog:
    def __init__(self, source, cache: TTLCache):
        self.source = source
        self.cache = cache

    def _items(self, key: str, groups):
        items = self.cache.get(key)
        if items is not None:
            current_app.logger.debug(
                "item catalog %s from cache, fresh for %.0f s more", key, self.cache.remaining(key)
            )
            return items
        items = self.source.fetch_items(groups)
        self.cache.set(key, items)
        current_app.logger.info("item catalog %s refreshed: %s items", key, len(items))
        return items

    def input_items(self):
        return self._items("entrada", INPUT_ITEM_GROUPS)

    def output_items(self):
        return self._items("saida", OUTPUT_ITEM_GROUPS)

    def test_connection(self):
        checked_at = fmt_ts(datetime.now())
        try:
            server_time = self.source.ping()
        except InfrastructureError as e:
            current_app.logger.warning("SAP connectivity check failed: %s", e.message)
            return {"success": False, "message": e.message, "timestamp": checked_at}
        return {
            "success": True,
            "message": "Conexão SAP OK",
            "data_servidor": fmt_ts(server_time),
            "timestamp": checked_at,
        }


def build_item_catalog(config) -> ItemCatalog:
    source = SapItemSource(config.get("SAP_DATABASE_URL", ""), config.get("SAP_ITEM_LIMIT", 9999))
    return ItemCatalog(source, TTLCache(config.get("SAP_CACHE_TTL", 1800)))
