"""Candidate pipeline: bid state machine, bid submission, project lifecycle."""

from .bids import BidSubmission, list_my_bids, submit_bid
from .candidates import (
    HireResult,
    RejectResult,
    candidate_board,
    hire,
    list_bids,
    list_interviews,
    list_shortlists,
    mark_viewed,
    reject,
    schedule_interview,
    set_interview_status,
    shortlist,
    update_shortlist_notes,
)
from .context import SessionContext, context_for, require_admin, require_project_owner
from .projects import (
    cancel_project,
    complete_project,
    get_project,
    list_my_projects,
    list_open_projects,
    post_project,
)
from .states import BID_TRANSITIONS, PROJECT_TRANSITIONS, can_transition_bid
from .transaction import NO_HOOKS, PipelineHooks, unit_of_work

__all__ = [
    # Context
    "SessionContext",
    "context_for",
    "require_admin",
    "require_project_owner",
    # State machine
    "BID_TRANSITIONS",
    "PROJECT_TRANSITIONS",
    "can_transition_bid",
    # Transactions
    "NO_HOOKS",
    "PipelineHooks",
    "unit_of_work",
    # Candidates
    "HireResult",
    "RejectResult",
    "candidate_board",
    "hire",
    "list_bids",
    "list_interviews",
    "list_shortlists",
    "mark_viewed",
    "reject",
    "schedule_interview",
    "set_interview_status",
    "shortlist",
    "update_shortlist_notes",
    # Bids
    "BidSubmission",
    "list_my_bids",
    "submit_bid",
    # Projects
    "cancel_project",
    "complete_project",
    "get_project",
    "list_my_projects",
    "list_open_projects",
    "post_project",
]
