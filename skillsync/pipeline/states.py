"""Bid and project state machines.

Bid flow:
    sent/pending → viewed → shortlisted → accepted
         └──────────┴──────────┴──────→ rejected

accepted and rejected are terminal.

Project flow:
    open → in_progress → completed
      └─────────┴──────→ cancelled
"""

from ..db.models import BidStatus, ProjectStatus, ShortlistStatus
from ..errors import InvalidTransitionError

BID_TRANSITIONS: dict[str, frozenset[str]] = {
    BidStatus.SENT.value: frozenset({
        BidStatus.VIEWED.value,
        BidStatus.SHORTLISTED.value,
        BidStatus.ACCEPTED.value,
        BidStatus.REJECTED.value,
    }),
    BidStatus.PENDING.value: frozenset({
        BidStatus.VIEWED.value,
        BidStatus.SHORTLISTED.value,
        BidStatus.ACCEPTED.value,
        BidStatus.REJECTED.value,
    }),
    BidStatus.VIEWED.value: frozenset({
        BidStatus.SHORTLISTED.value,
        BidStatus.ACCEPTED.value,
        BidStatus.REJECTED.value,
    }),
    BidStatus.SHORTLISTED.value: frozenset({
        BidStatus.ACCEPTED.value,
        BidStatus.REJECTED.value,
    }),
    BidStatus.ACCEPTED.value: frozenset(),
    BidStatus.REJECTED.value: frozenset(),
}

PROJECT_TRANSITIONS: dict[str, frozenset[str]] = {
    ProjectStatus.OPEN.value: frozenset({
        ProjectStatus.IN_PROGRESS.value,
        ProjectStatus.CANCELLED.value,
    }),
    ProjectStatus.IN_PROGRESS.value: frozenset({
        ProjectStatus.COMPLETED.value,
        ProjectStatus.CANCELLED.value,
    }),
    ProjectStatus.COMPLETED.value: frozenset(),
    ProjectStatus.CANCELLED.value: frozenset(),
}

# Bid states from which a bid is still "live" (not yet decided)
LIVE_BID_STATES = frozenset({
    BidStatus.SENT.value,
    BidStatus.PENDING.value,
    BidStatus.VIEWED.value,
    BidStatus.SHORTLISTED.value,
})

TERMINAL_SHORTLIST_STATES = frozenset({
    ShortlistStatus.HIRED.value,
    ShortlistStatus.REJECTED.value,
})


def can_transition_bid(current: str, target: str) -> bool:
    return target in BID_TRANSITIONS.get(current, frozenset())


def check_bid_transition(bid_id: str, current: str, target: str) -> None:
    """Raise InvalidTransitionError unless current → target is an edge."""
    if current not in BID_TRANSITIONS:
        raise InvalidTransitionError(f"Bid {bid_id} has unknown status '{current}'")
    if not can_transition_bid(current, target):
        raise InvalidTransitionError(
            f"Cannot move bid {bid_id} from '{current}' to '{target}'"
        )


def check_project_transition(project_id: str, current: str, target: str) -> None:
    if target not in PROJECT_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransitionError(
            f"Cannot move project {project_id} from '{current}' to '{target}'"
        )
