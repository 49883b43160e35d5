"""Document store backends for the reporting mirror.

Provides a clean abstraction over:
- MongoDB Atlas Data API — production
- Local filesystem (one JSON file per document) — testing & development

Usage:
    store = MongoDataAPIStore(api_url=..., api_key=...)
    # or
    store = LocalDocumentStore(base_dir="/tmp/mirror")

    await store.upsert("projects", project_id, document)
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import httpx

from ..config import MirrorConfig

logger = logging.getLogger(__name__)


# ============================================================
# Backend Protocol
# ============================================================


class DocumentStore(ABC):
    """Abstract document store keyed by source primary key."""

    @abstractmethod
    async def upsert(self, collection: str, doc_id: str, document: dict) -> dict:
        """Insert or replace the document with _id == doc_id.

        Returns:
            Backend-specific result metadata.
        """
        ...

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[dict]:
        """Fetch a document, or None if not found."""
        ...

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> bool:
        """Delete a document. Returns True if deleted."""
        ...

    async def close(self) -> None:
        return None


# ============================================================
# Local Filesystem Backend (testing & dev)
# ============================================================


class LocalDocumentStore(DocumentStore):
    """Filesystem-based document store for testing.

    Layout: <base_dir>/<collection>/<doc_id>.json
    """

    def __init__(self, base_dir: str):
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _resolve(self, collection: str, doc_id: str) -> Path:
        return self.base_dir / collection / f"{doc_id}.json"

    async def upsert(self, collection: str, doc_id: str, document: dict) -> dict:
        path = self._resolve(collection, doc_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        existed = path.exists()
        doc = {**document, "_id": doc_id}
        path.write_text(json.dumps(doc, default=str, indent=2))
        logger.debug(f"LocalDocumentStore: upserted {collection}/{doc_id}")
        return {
            "matchedCount": 1 if existed else 0,
            "upsertedId": None if existed else doc_id,
        }

    async def get(self, collection: str, doc_id: str) -> Optional[dict]:
        path = self._resolve(collection, doc_id)
        if not path.exists():
            return None
        return json.loads(path.read_text())

    async def delete(self, collection: str, doc_id: str) -> bool:
        path = self._resolve(collection, doc_id)
        if path.exists():
            path.unlink()
            return True
        return False


# ============================================================
# MongoDB Atlas Data API Backend (production)
# ============================================================


class MongoDataAPIStore(DocumentStore):
    """MongoDB Atlas Data API over HTTPS.

    Requires:
        MONGODB_DATA_API_URL, MONGODB_DATA_API_KEY
    """

    def __init__(
        self,
        api_url: str,
        api_key: str,
        data_source: str = "Cluster0",
        database: str = "skill_sync",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.data_source = data_source
        self.database = database
        self._client = httpx.AsyncClient(
            transport=transport,
            timeout=30.0,
            headers={"Content-Type": "application/json", "api-key": api_key},
        )

    async def _request(self, action: str, collection: str, body: dict) -> dict:
        payload = {
            "dataSource": self.data_source,
            "database": self.database,
            "collection": collection,
            **body,
        }
        resp = await self._client.post(
            f"{self.api_url}/action/{action}",
            content=json.dumps(payload, default=str),
        )
        if resp.status_code >= 400:
            logger.error(f"MongoDB Data API error: {resp.status_code} {resp.text}")
            raise RuntimeError(
                f"MongoDB Data API error: {resp.status_code} - {resp.text}"
            )
        return resp.json()

    async def upsert(self, collection: str, doc_id: str, document: dict) -> dict:
        return await self._request("updateOne", collection, {
            "filter": {"_id": doc_id},
            "update": {"$set": {**document, "_id": doc_id}},
            "upsert": True,
        })

    async def get(self, collection: str, doc_id: str) -> Optional[dict]:
        result = await self._request("findOne", collection, {"filter": {"_id": doc_id}})
        return result.get("document")

    async def delete(self, collection: str, doc_id: str) -> bool:
        result = await self._request("deleteOne", collection, {"filter": {"_id": doc_id}})
        return result.get("deletedCount", 0) > 0

    async def close(self) -> None:
        await self._client.aclose()


def create_document_store(config: MirrorConfig) -> DocumentStore:
    """Factory: creates the configured document store."""
    if config.backend == "mongo_data_api":
        if not config.api_url or not config.api_key:
            raise ValueError(
                "mirror.backend=mongo_data_api requires MONGODB_DATA_API_URL "
                "and MONGODB_DATA_API_KEY"
            )
        return MongoDataAPIStore(
            api_url=config.api_url,
            api_key=config.api_key,
            data_source=config.data_source,
            database=config.database,
        )
    if config.backend == "local":
        return LocalDocumentStore(config.local_dir)
    raise ValueError(f"Unknown mirror backend: {config.backend}")
