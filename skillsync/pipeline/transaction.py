"""Unit-of-work helper and post-commit side-effect hooks."""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generator, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import ConflictError, PersistenceError, SkillSyncError
from ..notifications.bus import NotificationBus
from .context import SessionContext

if TYPE_CHECKING:
    from ..mirror.queue import MirrorQueue

logger = logging.getLogger(__name__)


@contextmanager
def unit_of_work(
    session: Session,
    ctx: Optional[SessionContext],
    operation: str,
) -> Generator[Session, None, None]:
    """Run one pipeline action as a single transaction.

    Commits on success. On any failure the session is rolled back so no
    partial state survives; storage errors are mapped onto the domain
    taxonomy (uniqueness violations → ConflictError, everything else →
    PersistenceError).
    """
    session.info["actor"] = ctx.user_id if ctx is not None else None
    try:
        yield session
        session.commit()
    except SkillSyncError:
        session.rollback()
        raise
    except IntegrityError as e:
        session.rollback()
        logger.warning(f"{operation}: integrity violation: {e.orig}")
        raise ConflictError(f"{operation} conflicts with existing data") from e
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"{operation}: storage error: {e}")
        raise PersistenceError(f"{operation} failed: storage unavailable") from e
    finally:
        session.info.pop("actor", None)


@dataclass
class PipelineHooks:
    """Best-effort collaborators invoked after a successful commit."""

    bus: Optional[NotificationBus] = None
    mirror: Optional["MirrorQueue"] = None

    def enqueue_mirror(self, action: str, ids: list[str]) -> str:
        """Returns "queued" or "disabled"; never raises."""
        if self.mirror is None:
            return "disabled"
        return self.mirror.enqueue(action, ids)


NO_HOOKS = PipelineHooks()
