"""Best-effort mirror of projects and bids into a document store."""

from .backend import (
    DocumentStore,
    LocalDocumentStore,
    MongoDataAPIStore,
    create_document_store,
)
from .job import MirrorJob, build_project_document
from .queue import MirrorQueue, MirrorRequest, backoff_delay

__all__ = [
    "DocumentStore",
    "LocalDocumentStore",
    "MongoDataAPIStore",
    "create_document_store",
    "MirrorJob",
    "build_project_document",
    "MirrorQueue",
    "MirrorRequest",
    "backoff_delay",
]
