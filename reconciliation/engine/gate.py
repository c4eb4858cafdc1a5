"""
Confirmation Gate

Turns the top candidate's score into a link decision.

Two places ask the gate:

- PREVIEW: while a transaction is being typed. A score above the
  auto-link threshold pre-selects the obligation in the form; nothing
  is saved, the user can still change it.
- SUBMISSION: when a transaction is saved or an import is committed
  without an explicit link. A score above the confirmation threshold
  shows both records side by side and waits for accept/decline.

CRITICAL: The gate never writes anything. Applying an accepted link is
the caller's job and must be one atomic store write.
"""

from typing import Optional

from reconciliation.config import MatchingSettings, get_settings
from reconciliation.models.matching import (
    GateDecision,
    GateMode,
    LinkState,
    MatchCandidate,
)
from reconciliation.models.obligation import Obligation
from reconciliation.models.transaction import Transaction


class InvalidTransitionError(Exception):
    """A link state change that the lifecycle does not allow."""

    def __init__(self, current: LinkState, action: str):
        self.current = current
        self.action = action
        super().__init__(f"Cannot {action} a link in state '{current.value}'")


class ConfirmationGate:
    """Pure decision function over the top candidate."""

    def __init__(self, settings: Optional[MatchingSettings] = None):
        self._settings = settings or get_settings().matching

    def decide(
        self,
        candidate: Optional[MatchCandidate],
        transaction: Transaction,
        mode: GateMode = GateMode.PREVIEW,
        user_choice_made: bool = False,
    ) -> GateDecision:
        """
        Decide what to do with the top candidate.

        Args:
            candidate: Best-ranked candidate, or None if nothing survived.
            transaction: The draft being linked.
            mode: PREVIEW (live suggestion) or SUBMISSION (save/import).
            user_choice_made: The user already picked a link (or "none")
                explicitly; the gate then proposes nothing.
        """
        if candidate is None or user_choice_made:
            return GateDecision(outcome=LinkState.UNLINKED)

        if mode is GateMode.PREVIEW:
            if candidate.score > self._settings.auto_link_threshold:
                return GateDecision(outcome=LinkState.AUTO_LINKED, candidate=candidate)
            return GateDecision(outcome=LinkState.UNLINKED)

        if candidate.score > self._settings.confirm_threshold:
            return GateDecision(
                outcome=LinkState.PENDING_CONFIRMATION,
                candidate=candidate,
                overdue_priority=_is_overdue(candidate.obligation, transaction),
            )
        return GateDecision(outcome=LinkState.UNLINKED)


def _is_overdue(obligation: Obligation, transaction: Transaction) -> bool:
    if obligation.due_date is None or transaction.value_date is None:
        return False
    return obligation.due_date < transaction.value_date


class LinkSession:
    """
    Link lifecycle for one transaction.

        SCORING -> AUTO_LINKED | PENDING_CONFIRMATION | UNLINKED
        AUTO_LINKED | PENDING_CONFIRMATION -> LINKED (accept)
        AUTO_LINKED | PENDING_CONFIRMATION -> UNLINKED (decline)
        SCORING -> LINKED (explicit user choice)

    LINKED and UNLINKED are terminal until the user re-opens the link field.
    """

    def __init__(self):
        self._state = LinkState.SCORING
        self._decision: Optional[GateDecision] = None
        self._obligation: Optional[Obligation] = None

    @property
    def state(self) -> LinkState:
        return self._state

    @property
    def decision(self) -> Optional[GateDecision]:
        return self._decision

    @property
    def obligation(self) -> Optional[Obligation]:
        """Obligation currently proposed or linked."""
        return self._obligation

    @property
    def link_reference(self) -> Optional[str]:
        if self._obligation is None or self._state is LinkState.UNLINKED:
            return None
        return self._obligation.link_reference

    @property
    def is_terminal(self) -> bool:
        return self._state in (LinkState.LINKED, LinkState.UNLINKED)

    def apply(self, decision: GateDecision) -> LinkState:
        """Record the gate's decision. Only valid while scoring."""
        if self._state is not LinkState.SCORING:
            raise InvalidTransitionError(self._state, "apply a gate decision to")
        self._decision = decision
        self._obligation = decision.candidate.obligation if decision.candidate else None
        self._state = decision.outcome
        return self._state

    def choose(self, obligation: Optional[Obligation]) -> LinkState:
        """
        Explicit user choice in the link field.

        Choosing None means "no link" and is just as final.
        """
        if self.is_terminal:
            raise InvalidTransitionError(self._state, "choose")
        self._obligation = obligation
        self._state = LinkState.LINKED if obligation is not None else LinkState.UNLINKED
        return self._state

    def accept(self) -> LinkState:
        if self._state not in (LinkState.PENDING_CONFIRMATION, LinkState.AUTO_LINKED):
            raise InvalidTransitionError(self._state, "accept")
        self._state = LinkState.LINKED
        return self._state

    def decline(self) -> LinkState:
        if self._state not in (LinkState.PENDING_CONFIRMATION, LinkState.AUTO_LINKED):
            raise InvalidTransitionError(self._state, "decline")
        self._state = LinkState.UNLINKED
        return self._state

    def reopen(self) -> LinkState:
        """User re-opens the link field; scoring starts over."""
        if not self.is_terminal:
            raise InvalidTransitionError(self._state, "reopen")
        self._state = LinkState.SCORING
        self._decision = None
        self._obligation = None
        return self._state
