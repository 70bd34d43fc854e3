"""Derived aggregates of a ReconciledState.

Pure functions, no I/O. Everything here is recomputed from the source
collections of the state it is given; nothing is cached between states,
so the badge can never drift from the lists.
"""
from typing import Iterable

from collab_client.schemas.state import ReconciledState, RequestAggregates


def partition(items: Iterable) -> tuple[list, list]:
    """Split items into (pending, everything else), keeping order."""
    pending, responded = [], []
    for item in items:
        if item.is_pending:
            pending.append(item)
        else:
            responded.append(item)
    return pending, responded


def count_pending(items: Iterable) -> int:
    return sum(1 for item in items if item.is_pending)


def compute_aggregates(state: ReconciledState) -> RequestAggregates:
    pending_invitations, responded_invitations = partition(state.received_invitations)
    pending_received, responded_received = partition(state.received_join_requests)
    pending_sent, closed_sent = partition(state.sent_join_requests)

    awaiting: list[str] = []
    for request in pending_sent:
        if request.project.id not in awaiting:
            awaiting.append(request.project.id)

    return RequestAggregates(
        pending_invitations=pending_invitations,
        responded_invitations=responded_invitations,
        pending_received_join_requests=pending_received,
        responded_received_join_requests=responded_received,
        pending_sent_join_requests=pending_sent,
        closed_sent_join_requests=closed_sent,
        pending_invitation_count=len(pending_invitations),
        pending_join_request_count=len(pending_received),
        # Sent requests are the other side's to answer: never in the badge
        pending_count=len(pending_invitations) + len(pending_received),
        awaiting_project_ids=awaiting,
    )
