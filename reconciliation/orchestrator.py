"""
Main Orchestrator for Transaction Reconciliation

This module ties the pure engine to the store and defines the
end-to-end flows for:
1. Transaction entry (draft → preview → validate → save → gate → confirm)
2. Bank import (rows → classify → duplicates → match → gate → commit)
3. Obligation entry (record → validate → save; delete clears links)
4. Recurrence (patterns → look-alike check → expand → validate → commit)

DESIGN DECISION: The orchestrator enforces the boundaries:
- The engine never touches the store; only these flows do
- No proposed link is written without the user's accept
- Every step is audited

This is the "glue" that ensures the system works correctly
even when individual components might behave unexpectedly.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Union
from uuid import UUID

import structlog
from pydantic import BaseModel, Field

from reconciliation.agents import (
    ClassificationError,
    ClassificationSuggestion,
    GeminiDescriptionClassifier,
)
from reconciliation.audit import AuditLogger, configure_logging, create_correlation_id
from reconciliation.config import MatchingSettings, get_settings
from reconciliation.engine import (
    ConfirmationGate,
    DuplicateDetector,
    InvalidTransitionError,
    LinkSession,
    ObligationMatcher,
    RecurrenceExpander,
    batch_reference,
    find_similar_obligation,
)
from reconciliation.models import (
    DeadlineRecord,
    DuplicateCheck,
    ExpenseForecastRecord,
    ExpansionResult,
    GateDecision,
    GateMode,
    IncomeForecastRecord,
    LinkState,
    Obligation,
    RecurrencePattern,
    Transaction,
    ValidationIssue,
    ValidationResult,
    parse_obligation_record,
)
from reconciliation.services.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    InMemoryReconciliationStore,
    NotFoundError,
    ReconciliationStorageInterface,
    StorageError,
)
from reconciliation.validation import ObligationValidator, TransactionValidator


logger = structlog.get_logger(__name__)


AnyRecord = Union[DeadlineRecord, ExpenseForecastRecord, IncomeForecastRecord]


def _issue_dicts(validation: ValidationResult) -> list[dict]:
    return [
        {"field": i.field, "type": i.issue_type, "message": i.message}
        for i in validation.issues
    ]


# =============================================================================
# RESULT MODELS
# =============================================================================

class EntryOutcome(BaseModel):
    """Result of submitting one transaction."""

    transaction: Transaction
    validation: ValidationResult
    decision: GateDecision
    saved: bool = False
    message: str = ""
    correlation_id: Optional[UUID] = None

    @property
    def requires_confirmation(self) -> bool:
        return self.decision.requires_confirmation


class ObligationOutcome(BaseModel):
    """Result of submitting one obligation."""

    obligation: Obligation
    validation: ValidationResult
    saved: bool = False
    message: str = ""
    correlation_id: Optional[UUID] = None


class ImportRowResult(BaseModel):
    """One analyzed import row, waiting for the user's review."""

    index: int
    transaction: Transaction
    duplicate: DuplicateCheck
    decision: GateDecision
    classification: Optional[ClassificationSuggestion] = None
    accepted: bool = Field(
        default=False,
        description="User accepted the proposed link"
    )

    @property
    def reference(self) -> str:
        return self.transaction.id or batch_reference(self.index)

    def accept(self) -> "ImportRowResult":
        """Accept the pending proposal. Only pending rows can be accepted."""
        if not self.decision.requires_confirmation:
            raise InvalidTransitionError(self.decision.outcome, "accept")
        return self.model_copy(update={"accepted": True})


# =============================================================================
# SHARED
# =============================================================================

class _StoreBackedFlow:
    """Link helper shared by the transaction flows."""

    def __init__(
        self,
        store: ReconciliationStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[MatchingSettings] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().matching

    async def _commit_link(
        self,
        transaction: Transaction,
        reference: str,
        correlation_id: UUID,
    ) -> Transaction:
        """
        Link a saved transaction and settle the obligation in one store write.

        The obligation is re-read so that several links to the same
        obligation in one batch compute the status from fresh data.
        """
        obligation = await self._store.get_obligation(reference)
        if obligation is None:
            raise NotFoundError(f"Obligation {reference} not found")

        new_status = obligation.status_after_payment(
            transaction.amount,
            Decimal(str(self._settings.settlement_tolerance)),
        )
        try:
            linked = await self._store.apply_link(transaction.id, reference, new_status)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    details={"transaction_id": transaction.id, "obligation": reference},
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_link_saved(
                transaction_id=linked.id,
                obligation_ref=reference,
                new_status=new_status.value,
                correlation_id=correlation_id,
            )
        return linked


# =============================================================================
# TRANSACTION ENTRY
# =============================================================================

class TransactionEntryFlow(_StoreBackedFlow):
    """
    Orchestrates manual transaction entry.

    Flow:
    1. Preview → best match on every edit (no writes)
    2. Submit → validate, save, then ask the gate in SUBMISSION mode
    3. Resolve → user accepts or declines a pending proposal

    An explicit link (or explicit "no link") chosen by the user skips
    the gate entirely.
    """

    def __init__(
        self,
        store: ReconciliationStorageInterface,
        matcher: Optional[ObligationMatcher] = None,
        gate: Optional[ConfirmationGate] = None,
        validator: Optional[TransactionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[MatchingSettings] = None,
    ):
        super().__init__(store, audit_logger, settings)
        self._matcher = matcher or ObligationMatcher(self._settings)
        self._gate = gate or ConfirmationGate(self._settings)
        self._validator = validator or TransactionValidator()

    def preview(
        self,
        draft: Transaction,
        obligations: Iterable[Obligation],
    ) -> GateDecision:
        """
        Live suggestion for a draft being typed.

        Synchronous and side-effect free; callers pass the open
        obligations they already hold.
        """
        candidate = self._matcher.best_match(draft, obligations)
        return self._gate.decide(candidate, draft, GateMode.PREVIEW)

    async def suggest(
        self,
        draft: Transaction,
        correlation_id: Optional[UUID] = None,
    ) -> GateDecision:
        """
        Preview against the store's open obligations.

        Used when the form is (re)opened and the caller holds no snapshot.
        Writes nothing except the audit trail.
        """
        if not draft.company or draft.direction is None:
            return GateDecision(outcome=LinkState.UNLINKED)

        obligations = await self._store.list_open_obligations(draft.company, draft.direction)
        decision = self.preview(draft, obligations)

        if decision.outcome is LinkState.AUTO_LINKED and self._audit_logger:
            await self._audit_logger.log_link_auto_selected(
                transaction_ref=draft.id or batch_reference(0),
                obligation_ref=decision.link_reference,
                score=decision.candidate.score,
                correlation_id=correlation_id or create_correlation_id(),
            )
        return decision

    @staticmethod
    def _check_chosen_link(
        draft: Transaction,
        reference: str,
        obligation: Optional[Obligation],
    ) -> list[ValidationIssue]:
        """The explicitly chosen obligation must exist and fit the draft."""
        if obligation is None:
            return [ValidationIssue(
                field="obligation_link",
                issue_type="not_found",
                message=f"Obligation {reference} no longer exists",
                severity="error",
                suggested_fix="Pick the obligation again",
            )]

        issues = []
        if obligation.company != draft.company:
            issues.append(ValidationIssue(
                field="obligation_link",
                issue_type="company_mismatch",
                message=f"Obligation {reference} belongs to {obligation.company}",
                severity="error",
            ))
        if obligation.direction is not draft.direction:
            issues.append(ValidationIssue(
                field="obligation_link",
                issue_type="direction_mismatch",
                message=(
                    f"Obligation {reference} expects an "
                    f"{obligation.direction.value}, not an "
                    f"{draft.direction.value if draft.direction else 'empty movement'}"
                ),
                severity="error",
            ))
        return issues

    async def submit(
        self,
        draft: Transaction,
        chosen_reference: Optional[str] = None,
        no_link: bool = False,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> EntryOutcome:
        """
        Validate and save a transaction, then propose a link.

        Nothing is written unless the draft and any chosen link are valid.

        Args:
            draft: The transaction as entered
            chosen_reference: Obligation the user explicitly picked
            no_link: The user explicitly picked "no link"
            today: Reference date for validation
        """
        correlation_id = correlation_id or create_correlation_id()

        existing = await self._store.list_transactions(draft.company)
        validation = self._validator.validate(draft, existing, today=today)

        if validation.is_valid and chosen_reference:
            chosen = await self._store.get_obligation(chosen_reference)
            link_issues = self._check_chosen_link(draft, chosen_reference, chosen)
            if link_issues:
                validation = validation.model_copy(update={
                    "semantic_valid": False,
                    "is_valid": False,
                    "issues": validation.issues + link_issues,
                })

        message = self._validator.get_user_friendly_summary(validation)

        if not validation.is_valid:
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(
                    record_id=draft.id,
                    issues=_issue_dicts(validation),
                    correlation_id=correlation_id,
                )
            return EntryOutcome(
                transaction=draft,
                validation=validation,
                decision=GateDecision(outcome=LinkState.UNLINKED),
                message=message,
                correlation_id=correlation_id,
            )

        if validation.is_potential_duplicate and self._audit_logger:
            await self._audit_logger.log_duplicate_flagged(
                record_ref=draft.id or batch_reference(0),
                colliding_id=validation.duplicate_of,
                correlation_id=correlation_id,
            )

        # Links are only ever written through apply_link
        unlinked = draft.model_copy(update={"obligation_link": None})
        saved = (await self._store.save_transactions([unlinked]))[0]
        if self._audit_logger:
            await self._audit_logger.log_transaction_saved(
                transaction_id=saved.id,
                company=saved.company,
                amount=str(saved.amount),
                correlation_id=correlation_id,
            )

        if chosen_reference:
            linked = await self._commit_link(saved, chosen_reference, correlation_id)
            return EntryOutcome(
                transaction=linked,
                validation=validation,
                decision=GateDecision(outcome=LinkState.LINKED),
                saved=True,
                message=message,
                correlation_id=correlation_id,
            )

        if no_link or saved.direction is None:
            decision = self._gate.decide(None, saved, GateMode.SUBMISSION, user_choice_made=True)
        else:
            obligations = await self._store.list_open_obligations(saved.company, saved.direction)
            ranked = self._matcher.rank(saved, obligations)
            top = ranked[0] if ranked else None
            if self._audit_logger:
                await self._audit_logger.log_match_ranked(
                    transaction_ref=saved.id,
                    candidate_count=len(ranked),
                    top_reference=top.link_reference if top else None,
                    top_score=top.score if top else None,
                    correlation_id=correlation_id,
                )
            decision = self._gate.decide(top, saved, GateMode.SUBMISSION)

        if decision.requires_confirmation and self._audit_logger:
            await self._audit_logger.log_confirmation_requested(
                transaction_ref=saved.id,
                obligation_ref=decision.link_reference,
                score=decision.candidate.score,
                overdue_priority=decision.overdue_priority,
                correlation_id=correlation_id,
            )

        return EntryOutcome(
            transaction=saved,
            validation=validation,
            decision=decision,
            saved=True,
            message=message,
            correlation_id=correlation_id,
        )

    async def resolve(
        self,
        outcome: EntryOutcome,
        accept: bool,
    ) -> Transaction:
        """
        Apply the user's answer to a pending proposal.

        Raises:
            InvalidTransitionError: If the outcome has nothing pending
        """
        correlation_id = outcome.correlation_id or create_correlation_id()

        session = LinkSession()
        session.apply(outcome.decision)
        reference = outcome.decision.link_reference

        if not accept:
            session.decline()
            if reference and self._audit_logger:
                await self._audit_logger.log_link_declined(
                    transaction_ref=outcome.transaction.id,
                    obligation_ref=reference,
                    correlation_id=correlation_id,
                )
            return outcome.transaction

        session.accept()
        if self._audit_logger:
            await self._audit_logger.log_link_accepted(
                transaction_ref=outcome.transaction.id,
                obligation_ref=reference,
                correlation_id=correlation_id,
            )
        return await self._commit_link(outcome.transaction, reference, correlation_id)


# =============================================================================
# BANK IMPORT
# =============================================================================

class ImportFlow(_StoreBackedFlow):
    """
    Orchestrates a bank statement import.

    Flow:
    1. Analyze → classify descriptions, flag duplicates, propose links
    2. Review → user accepts proposals (PAUSE)
    3. Commit → save new rows, write accepted links

    Classification is best-effort: a failure leaves the row unclassified
    and the matcher simply gets no bonus terms for it.
    """

    def __init__(
        self,
        store: ReconciliationStorageInterface,
        classifier: Optional[GeminiDescriptionClassifier] = None,
        matcher: Optional[ObligationMatcher] = None,
        gate: Optional[ConfirmationGate] = None,
        detector: Optional[DuplicateDetector] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[MatchingSettings] = None,
    ):
        super().__init__(store, audit_logger, settings)
        self._classifier = classifier
        self._matcher = matcher or ObligationMatcher(
            self._settings, include_classification_bonus=True
        )
        self._gate = gate or ConfirmationGate(self._settings)
        self._detector = detector or DuplicateDetector()

    async def _classify(
        self,
        index: int,
        row: Transaction,
        correlation_id: UUID,
    ) -> tuple[Transaction, Optional[ClassificationSuggestion]]:
        if self._classifier is None or row.category or not row.description:
            return row, None

        try:
            suggestion = await self._classifier.classify(row.description)
        except ClassificationError as e:
            if self._audit_logger:
                await self._audit_logger.log_classification_failed(
                    record_ref=row.id or batch_reference(index),
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            return row, None

        if not suggestion.is_categorized:
            return row, suggestion
        classified = row.model_copy(update={
            "category": suggestion.category,
            "subcategory": suggestion.subcategory,
        })
        return classified, suggestion

    async def analyze(
        self,
        rows: list[Transaction],
        correlation_id: Optional[UUID] = None,
    ) -> list[ImportRowResult]:
        """
        Analyze imported rows. Writes nothing.

        Returns:
            One result per row, in input order
        """
        correlation_id = correlation_id or create_correlation_id()

        classified = []
        suggestions = []
        for index, row in enumerate(rows):
            row, suggestion = await self._classify(index, row, correlation_id)
            classified.append(row)
            suggestions.append(suggestion)

        stored = await self._store.list_transactions()
        checks = self._detector.check_batch(classified, stored)

        pools: dict[tuple, list[Obligation]] = {}
        results = []
        for index, (row, check, suggestion) in enumerate(zip(classified, checks, suggestions)):
            if check.is_duplicate and self._audit_logger:
                await self._audit_logger.log_duplicate_flagged(
                    record_ref=row.id or batch_reference(index),
                    colliding_id=check.colliding_id,
                    correlation_id=correlation_id,
                )

            top = None
            if row.company and row.direction is not None:
                pool_key = (row.company, row.direction)
                if pool_key not in pools:
                    pools[pool_key] = await self._store.list_open_obligations(*pool_key)
                top = self._matcher.best_match(row, pools[pool_key])
            decision = self._gate.decide(top, row, GateMode.SUBMISSION)

            results.append(ImportRowResult(
                index=index,
                transaction=row,
                duplicate=check,
                decision=decision,
                classification=suggestion,
            ))

        logger.info(
            "import_analyzed",
            row_count=len(results),
            duplicate_count=sum(1 for r in results if r.duplicate.is_duplicate),
            proposal_count=sum(1 for r in results if r.decision.requires_confirmation),
        )
        return results

    @staticmethod
    def _skipped_as_duplicate(
        result: ImportRowResult,
        positions: dict[str, int],
    ) -> bool:
        """
        A flagged row is skipped unless it is the first of its group.

        Rows that collide with a stored record are always skipped. Rows
        that only collide inside the batch keep their first occurrence.
        """
        if not result.duplicate.is_duplicate:
            return False
        other = positions.get(result.duplicate.colliding_id)
        if other is None:
            return True
        return other < result.index

    async def commit(
        self,
        results: list[ImportRowResult],
        include_duplicates: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> list[Transaction]:
        """
        Save the reviewed rows and write the accepted links.

        Args:
            results: Output of analyze(), with accepted rows marked
            include_duplicates: Also save repeated rows and rows that
                collide with stored records

        Returns:
            The saved transactions (linked where accepted)
        """
        correlation_id = correlation_id or create_correlation_id()

        positions = {r.reference: r.index for r in results}
        to_save = [
            r for r in results
            if include_duplicates or not self._skipped_as_duplicate(r, positions)
        ]
        saved = await self._store.save_transactions([
            r.transaction.model_copy(update={"obligation_link": None})
            for r in to_save
        ])

        committed = []
        for result, transaction in zip(to_save, saved):
            reference = result.decision.link_reference
            if result.accepted and reference:
                if self._audit_logger:
                    await self._audit_logger.log_link_accepted(
                        transaction_ref=transaction.id,
                        obligation_ref=reference,
                        correlation_id=correlation_id,
                    )
                transaction = await self._commit_link(transaction, reference, correlation_id)
            committed.append(transaction)

        if self._audit_logger:
            await self._audit_logger.log_import_completed(
                row_count=len(results),
                saved_count=len(committed),
                duplicate_count=sum(1 for r in results if r.duplicate.is_duplicate),
                correlation_id=correlation_id,
            )
        return committed


# =============================================================================
# OBLIGATION ENTRY
# =============================================================================

class ObligationFlow:
    """
    Orchestrates manual obligation entry and removal.

    A possible duplicate is a warning, as for transactions. Deleting an
    obligation clears the links pointing to it; the transactions stay.
    """

    def __init__(
        self,
        store: ReconciliationStorageInterface,
        validator: Optional[ObligationValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._validator = validator or ObligationValidator()
        self._audit_logger = audit_logger

    async def add(
        self,
        record: Union[AnyRecord, dict],
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ObligationOutcome:
        """
        Validate and insert one obligation record (or raw payload).

        Raises:
            DuplicateError: If the store already holds the same reference
        """
        correlation_id = correlation_id or create_correlation_id()
        if isinstance(record, dict):
            record = parse_obligation_record(record)
        obligation = Obligation.from_record(record)

        existing = await self._store.list_obligations(obligation.company)
        validation = self._validator.validate(obligation, existing, today=today)
        message = self._validator.get_user_friendly_summary(validation)

        if not validation.is_valid:
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(
                    record_id=obligation.link_reference,
                    issues=_issue_dicts(validation),
                    correlation_id=correlation_id,
                    entity_type="obligation",
                )
            return ObligationOutcome(
                obligation=obligation,
                validation=validation,
                message=message,
                correlation_id=correlation_id,
            )

        if validation.is_potential_duplicate and self._audit_logger:
            await self._audit_logger.log_duplicate_flagged(
                record_ref=obligation.link_reference,
                colliding_id=validation.duplicate_of,
                correlation_id=correlation_id,
                entity_type="obligation",
            )

        saved = await self._store.save_obligation(record)
        if self._audit_logger:
            await self._audit_logger.log_obligation_saved(
                obligation_ref=saved.link_reference,
                company=saved.company,
                amount=str(saved.expected_amount),
                correlation_id=correlation_id,
            )

        return ObligationOutcome(
            obligation=saved,
            validation=validation,
            saved=True,
            message=message,
            correlation_id=correlation_id,
        )

    async def delete(
        self,
        reference: str,
        correlation_id: Optional[UUID] = None,
    ) -> list[str]:
        """
        Delete an obligation and clear the links pointing to it.

        Returns:
            IDs of the transactions whose link was cleared

        Raises:
            NotFoundError: If the obligation doesn't exist
        """
        cleared = await self._store.delete_obligation(reference)
        if self._audit_logger:
            await self._audit_logger.log_link_cleared(
                obligation_ref=reference,
                transaction_ids=cleared,
                correlation_id=correlation_id or create_correlation_id(),
            )
        return cleared


# =============================================================================
# RECURRENCE
# =============================================================================

class RecurrenceFlow:
    """
    Orchestrates turning detected patterns into obligations.

    Each pattern is committed on its own: drafts plus the accepted status
    in one store call. Drafts identical to an existing obligation are
    left out. A failure on one pattern is audited and the rest carry on.
    """

    def __init__(
        self,
        store: ReconciliationStorageInterface,
        expander: Optional[RecurrenceExpander] = None,
        validator: Optional[ObligationValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._expander = expander or RecurrenceExpander()
        self._validator = validator or ObligationValidator()
        self._audit_logger = audit_logger

    async def similar_obligations(
        self,
        patterns: Iterable[RecurrencePattern],
        correlation_id: Optional[UUID] = None,
    ) -> dict[str, Obligation]:
        """
        Existing look-alike obligation per pattern id.

        Patterns without a look-alike are absent from the result.
        """
        correlation_id = correlation_id or create_correlation_id()

        found = {}
        for pattern in patterns:
            existing = await self._store.list_obligations(pattern.company)
            similar = find_similar_obligation(pattern, existing)
            if similar is None:
                continue
            found[pattern.id] = similar
            if self._audit_logger:
                await self._audit_logger.log_similar_obligation_found(
                    pattern_id=pattern.id,
                    obligation_ref=similar.link_reference,
                    correlation_id=correlation_id,
                )
        return found

    async def _screen_drafts(
        self,
        pattern: RecurrencePattern,
        result: ExpansionResult,
        correlation_id: UUID,
    ) -> ExpansionResult:
        """
        Validate the drafts of one pattern against its company's obligations.

        Returns the result with duplicates moved out of `drafts`, or a
        skipped result if any draft is invalid.
        """
        existing = await self._store.list_obligations(pattern.company)

        kept = []
        duplicates = []
        for draft in result.drafts:
            ref = f"{pattern.id}:{draft.due_date.isoformat()}"
            validation = self._validator.validate(
                draft.to_obligation(ref), existing, check_dates=False
            )
            if not validation.is_valid:
                if self._audit_logger:
                    await self._audit_logger.log_validation_failed(
                        record_id=ref,
                        issues=_issue_dicts(validation),
                        correlation_id=correlation_id,
                        entity_type="obligation",
                    )
                return ExpansionResult(
                    pattern_id=pattern.id,
                    target_year=result.target_year,
                    skipped_reason=f"invalid draft for {draft.due_date.isoformat()}",
                    status=pattern.status,
                )
            if validation.is_potential_duplicate:
                if self._audit_logger:
                    await self._audit_logger.log_duplicate_flagged(
                        record_ref=ref,
                        colliding_id=validation.duplicate_of,
                        correlation_id=correlation_id,
                        entity_type="obligation",
                    )
                duplicates.append(draft)
                continue
            kept.append(draft)

        return result.model_copy(update={"drafts": kept, "duplicates": duplicates})

    async def expand(
        self,
        patterns: Iterable[RecurrencePattern],
        target_year: int,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> list[ExpansionResult]:
        """
        Expand and commit each pattern for `target_year`.

        Patterns without an anchor month start from the current month.
        """
        correlation_id = correlation_id or create_correlation_id()
        fallback_month = (today or date.today()).month

        results = []
        for pattern in patterns:
            result = self._expander.expand(pattern, target_year, fallback_month)
            if not result.skipped_reason:
                result = await self._screen_drafts(pattern, result, correlation_id)

            if result.skipped_reason:
                if self._audit_logger:
                    await self._audit_logger.log_pattern_expansion_skipped(
                        pattern_id=pattern.id,
                        reason=result.skipped_reason,
                        correlation_id=correlation_id,
                    )
                results.append(result)
                continue

            try:
                await self._store.commit_expansion(result.drafts, pattern.mark_accepted())
            except Exception as e:
                if self._audit_logger:
                    await self._audit_logger.log_error(
                        error_type=type(e).__name__,
                        error_message=str(e),
                        details={"pattern_id": pattern.id},
                        correlation_id=correlation_id,
                    )
                results.append(ExpansionResult(
                    pattern_id=pattern.id,
                    target_year=target_year,
                    skipped_reason=f"commit failed: {e}",
                    status=pattern.status,
                ))
                continue

            if self._audit_logger:
                await self._audit_logger.log_pattern_expanded(
                    pattern_id=pattern.id,
                    target_year=target_year,
                    draft_count=result.draft_count,
                    correlation_id=correlation_id,
                )
            results.append(result)

        return results

    async def reject(
        self,
        pattern: RecurrencePattern,
        correlation_id: Optional[UUID] = None,
    ) -> RecurrencePattern:
        """
        Mark a pattern rejected so it is never proposed again.

        Raises:
            PatternStateError: If the pattern is not pending
        """
        rejected = pattern.mark_rejected()
        await self._store.save_pattern(rejected)
        if self._audit_logger:
            await self._audit_logger.log_pattern_rejected(
                pattern_id=pattern.id,
                correlation_id=correlation_id or create_correlation_id(),
            )
        return rejected


def create_app_components(
    store: Optional[ReconciliationStorageInterface] = None,
    audit_storage: Optional[AuditStorageInterface] = None,
    use_classifier: bool = True,
) -> tuple[TransactionEntryFlow, ImportFlow, ObligationFlow, RecurrenceFlow]:
    """
    Factory function to create all application components.

    Args:
        store: Record store. Defaults to an in-memory store.
        audit_storage: Audit store. Defaults to an in-memory log.
        use_classifier: Whether to set up the Gemini classifier.
                        Set to False for running without an API key.

    Returns:
        (entry_flow, import_flow, obligation_flow, recurrence_flow)
    """
    configure_logging(get_settings().app.log_level)

    store = store or InMemoryReconciliationStore()
    audit_logger = AuditLogger(audit_storage or InMemoryAuditStorage())

    classifier = None
    if use_classifier:
        try:
            classifier = GeminiDescriptionClassifier()
        except Exception as e:
            # Classifier not configured - imports run without bonus terms
            logger.warning("classifier_not_configured", error=str(e))

    entry_flow = TransactionEntryFlow(store, audit_logger=audit_logger)
    import_flow = ImportFlow(store, classifier=classifier, audit_logger=audit_logger)
    obligation_flow = ObligationFlow(store, audit_logger=audit_logger)
    recurrence_flow = RecurrenceFlow(store, audit_logger=audit_logger)

    return entry_flow, import_flow, obligation_flow, recurrence_flow
