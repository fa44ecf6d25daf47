"""
Status Workflow Engine - alert lifecycle state machine.

DESIGN PRINCIPLES:
- Votes only ever move an alert out of "pending"
- Only the author (or an admin) resolves an alert
- Admin overrides are the only way back from confirmed/fake
- Every transition produces an audit entry
"""

from enum import Enum
from typing import Dict, List, Optional
import logging

from gasy_hub.core.errors import InvalidTransitionError

logger = logging.getLogger(__name__)


class AlertStatus(str, Enum):
    """
    Lifecycle of an alert:
    PENDING → CONFIRMED | FAKE, CONFIRMED → RESOLVED
    """
    PENDING = "pending"        # Initial state, awaiting community votes
    CONFIRMED = "confirmed"    # Enough neighbours confirmed it (or admin)
    FAKE = "fake"              # Rejected by the community (or admin)
    RESOLVED = "resolved"      # Terminal, closed by its author


class TransitionActor(str, Enum):
    """Who is asking for the change."""
    VOTES = "votes"
    AUTHOR = "author"
    ADMIN = "admin"


SYSTEM_ACTOR_ID = "system"


class StatusWorkflowEngine:
    """
    State machine for alert status transitions.

    The allowed targets depend on both the current status and the actor.
    """

    VOTE_TRANSITIONS: Dict[AlertStatus, List[AlertStatus]] = {
        AlertStatus.PENDING: [AlertStatus.CONFIRMED, AlertStatus.FAKE],
        AlertStatus.CONFIRMED: [],
        AlertStatus.FAKE: [],
        AlertStatus.RESOLVED: [],
    }

    AUTHOR_TRANSITIONS: Dict[AlertStatus, List[AlertStatus]] = {
        AlertStatus.PENDING: [AlertStatus.RESOLVED],  # gated by allow_pending_resolution
        AlertStatus.CONFIRMED: [AlertStatus.RESOLVED],
        AlertStatus.FAKE: [],
        AlertStatus.RESOLVED: [],
    }

    ADMIN_TRANSITIONS: Dict[AlertStatus, List[AlertStatus]] = {
        AlertStatus.PENDING: [AlertStatus.CONFIRMED, AlertStatus.FAKE],
        AlertStatus.CONFIRMED: [AlertStatus.FAKE, AlertStatus.RESOLVED],
        AlertStatus.FAKE: [AlertStatus.CONFIRMED],
        AlertStatus.RESOLVED: [],
    }

    def __init__(self, allow_pending_resolution: bool = True):
        self.allow_pending_resolution = allow_pending_resolution

    def _table(self, actor: TransitionActor) -> Dict[AlertStatus, List[AlertStatus]]:
        if actor == TransitionActor.VOTES:
            return self.VOTE_TRANSITIONS
        if actor == TransitionActor.AUTHOR:
            return self.AUTHOR_TRANSITIONS
        return self.ADMIN_TRANSITIONS

    def get_allowed_transitions(self, current_status: str, actor: TransitionActor) -> List[str]:
        """
        Get list of allowed next statuses from current status for an actor.
        """
        try:
            current_enum = AlertStatus(current_status)
        except ValueError:
            return []

        allowed = list(self._table(actor).get(current_enum, []))
        if (
            actor == TransitionActor.AUTHOR
            and current_enum == AlertStatus.PENDING
            and not self.allow_pending_resolution
        ):
            allowed.remove(AlertStatus.RESOLVED)
        return [s.value for s in allowed]

    def is_valid_transition(self, from_status: str, to_status: str, actor: TransitionActor) -> bool:
        try:
            AlertStatus(to_status)
        except ValueError:
            return False
        return to_status in self.get_allowed_transitions(from_status, actor)

    def validate_transition(self, current_status: str, new_status: str, actor: TransitionActor) -> None:
        """
        Raises:
            InvalidTransitionError: if the transition is not allowed for the actor
        """
        if not self.is_valid_transition(current_status, new_status, actor):
            allowed = self.get_allowed_transitions(current_status, actor)
            raise InvalidTransitionError(
                f"Invalid status transition: {current_status} → {new_status}. "
                f"Allowed transitions from {current_status} for {actor.value}: {allowed}"
            )

    def status_after_votes(
        self,
        current_status: str,
        confirmed_count: int,
        rejected_count: int,
        confirmation_threshold: int,
        rejection_threshold: int,
    ) -> Optional[str]:
        """
        Threshold policy for vote-driven transitions.

        Returns the new status, or None when the status stays as it is.
        Confirmation wins when both thresholds are reached.
        A threshold of 0 or less disables that transition.
        The result must be a VOTE_TRANSITIONS move from current_status.
        """
        if confirmation_threshold > 0 and confirmed_count >= confirmation_threshold:
            target = AlertStatus.CONFIRMED.value
        elif rejection_threshold > 0 and rejected_count >= rejection_threshold:
            target = AlertStatus.FAKE.value
        else:
            return None

        if not self.is_valid_transition(current_status, target, TransitionActor.VOTES):
            return None
        return target
