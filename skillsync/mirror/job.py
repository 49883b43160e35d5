"""Mirror job — copies projects (with their bids) into the document store.

One document per project, keyed by project id:

    {
        "_id": <project id>, ...project columns...,
        "client":     {id, full_name, email, avatar_url},
        "freelancer": {id, full_name, email, avatar_url} | None,
        "bids": [{...bid columns..., "freelancer": {..., skills, hourly_rate}}],
        "synced_at": <iso timestamp>,
    }

The relational store stays the source of truth; re-running a sync simply
overwrites the documents.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload, sessionmaker

from ..db.models import Bid, Profile, Project, utcnow
from ..errors import ValidationError
from .backend import DocumentStore

logger = logging.getLogger(__name__)

ACTIONS = ("project", "bid", "all")

PROJECT_FIELDS = (
    "id", "client_id", "freelancer_id", "title", "description", "category",
    "budget_min", "budget_max", "deadline", "duration", "required_skills",
    "status", "created_at", "updated_at",
)
BID_FIELDS = (
    "id", "project_id", "freelancer_id", "amount", "delivery_days", "proposal",
    "status", "created_at", "updated_at",
)


def _value(value):
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _profile_summary(profile: Optional[Profile], detailed: bool = False) -> Optional[dict]:
    if profile is None:
        return None
    summary = {
        "id": profile.id,
        "full_name": profile.full_name,
        "email": profile.email,
        "avatar_url": profile.avatar_url,
    }
    if detailed:
        summary["skills"] = profile.skills or []
        summary["hourly_rate"] = profile.hourly_rate
    return summary


def build_project_document(project: Project) -> dict:
    """Denormalize a project and its bids into one mirror document."""
    doc = {field: _value(getattr(project, field)) for field in PROJECT_FIELDS}
    doc["_id"] = project.id
    doc["client"] = _profile_summary(project.client)
    doc["freelancer"] = _profile_summary(project.freelancer)
    doc["bids"] = []
    for bid in project.bids:
        entry = {field: _value(getattr(bid, field)) for field in BID_FIELDS}
        entry["freelancer"] = _profile_summary(bid.freelancer, detailed=True)
        doc["bids"].append(entry)
    doc["synced_at"] = utcnow().isoformat()
    return doc


class MirrorJob:
    """Loads projects from the relational store and upserts them.

    Usage:
        job = MirrorJob(session_factory, LocalDocumentStore("/tmp/mirror"))
        await job.sync("project", [project_id])
        await job.sync("all")
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        store: DocumentStore,
        collection: str = "projects",
    ):
        self.session_factory = session_factory
        self.store = store
        self.collection = collection

    def _load_documents(self, action: str, ids: list[str]) -> tuple[list[dict], list[dict]]:
        """Build documents for the requested action (runs in a worker thread).

        Returns:
            (documents, failures) — failures are ids that could not be resolved.
        """
        failures: list[dict] = []
        session: Session = self.session_factory()
        try:
            stmt = select(Project).options(
                selectinload(Project.client),
                selectinload(Project.freelancer),
                selectinload(Project.bids).selectinload(Bid.freelancer),
            )
            if action == "all":
                projects = list(session.scalars(stmt.order_by(Project.created_at)))
                return [build_project_document(p) for p in projects], failures

            if action == "bid":
                project_ids: list[str] = []
                for bid_id in ids:
                    bid = session.get(Bid, bid_id)
                    if bid is None:
                        failures.append({
                            "bid_id": bid_id, "success": False,
                            "error": "bid not found", "retryable": False,
                        })
                    elif bid.project_id not in project_ids:
                        project_ids.append(bid.project_id)
            else:
                project_ids = list(dict.fromkeys(ids))

            found = {
                p.id: p for p in session.scalars(stmt.where(Project.id.in_(project_ids)))
            }
            documents = []
            for project_id in project_ids:
                project = found.get(project_id)
                if project is None:
                    failures.append({
                        "project_id": project_id, "success": False,
                        "error": "project not found", "retryable": False,
                    })
                else:
                    documents.append(build_project_document(project))
            return documents, failures
        finally:
            session.close()

    async def sync(self, action: str, ids: Optional[list[str]] = None) -> dict:
        """Mirror the requested projects.

        Args:
            action: "project" (ids are project ids), "bid" (ids are bid ids;
                their parent projects are re-synced) or "all"
            ids: Required unless action == "all"

        Returns:
            {"synced": N, "failed": N, "details": [...]}
        """
        if action not in ACTIONS:
            raise ValidationError(f"Unknown mirror action '{action}'")
        if action != "all" and not ids:
            raise ValidationError(f"Mirror action '{action}' requires ids")

        loop = asyncio.get_running_loop()
        documents, details = await loop.run_in_executor(
            None, self._load_documents, action, list(ids or [])
        )

        for doc in documents:
            try:
                await self.store.upsert(self.collection, doc["_id"], doc)
                details.append({"project_id": doc["_id"], "success": True})
                logger.info(f"Mirrored project {doc['_id']}: {doc['title']}")
            except Exception as e:
                logger.error(f"Failed to mirror project {doc['_id']}: {e}")
                details.append({"project_id": doc["_id"], "success": False, "error": str(e)})

        synced = sum(1 for d in details if d["success"])
        result = {"synced": synced, "failed": len(details) - synced, "details": details}
        logger.info(f"Mirror sync ({action}): {result['synced']} synced, {result['failed']} failed")
        return result
