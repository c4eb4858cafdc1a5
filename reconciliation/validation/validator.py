"""
Two-Stage Validation for Transactions and Obligations

STAGE 1 - SCHEMA VALIDATION:
- Required field presence (company, date, description)
- Amount present and positive

STAGE 2 - SEMANTIC VALIDATION:
- Transactions: future dates, suspiciously old dates, absurd amounts
- Obligations: deadlines cannot fall in the past, forecasts must be in
  the future
- Duplicate detection against the records the caller supplies

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for human review. A possible duplicate is a warning,
not an error: the user may legitimately record two identical movements.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from reconciliation.config import AppSettings, get_settings
from reconciliation.engine.duplicates import DuplicateDetector, Record
from reconciliation.models.obligation import Obligation, ObligationKind
from reconciliation.models.transaction import Transaction
from reconciliation.models.validation import ValidationIssue, ValidationResult


class _TwoStageValidator:
    """Settings, duplicate detector and the summary shared by both validators."""

    def __init__(
        self,
        settings: Optional[AppSettings] = None,
        detector: Optional[DuplicateDetector] = None,
    ):
        self._settings = settings or get_settings().app
        self._detector = detector or DuplicateDetector()

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """Generate a short summary to show next to the entry form."""
        if result.is_valid and not result.warnings:
            return "All checks passed."

        lines = []

        if result.has_errors:
            lines.append("Please fix the following before saving:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)


class TransactionValidator(_TwoStageValidator):
    """
    Validates transaction drafts before they are saved.

    Stage 1 runs on the draft alone; stage 2 also sees existing records
    for the duplicate check.
    """

    def _validate_schema(
        self,
        draft: Transaction,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        if draft.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
                suggested_fix="Enter the amount as an inflow or an outflow",
            ))

        if draft.value_date is None:
            issues.append(ValidationIssue(
                field="value_date",
                issue_type="missing",
                message="Date is required",
                severity="error",
            ))

        if not draft.company:
            issues.append(ValidationIssue(
                field="company",
                issue_type="missing",
                message="Company is required",
                severity="error",
            ))

        min_length = self._settings.min_description_length
        if not draft.description or len(draft.description.strip()) < min_length:
            issues.append(ValidationIssue(
                field="description",
                issue_type="too_short",
                message=f"Description must be at least {min_length} characters",
                severity="error",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def _validate_semantic(
        self,
        draft: Transaction,
        today: date,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        max_future_date = today + timedelta(days=self._settings.future_date_tolerance_days)
        if draft.value_date and draft.value_date > max_future_date:
            issues.append(ValidationIssue(
                field="value_date",
                issue_type="future_date",
                message=f"Date ({draft.value_date}) is in the future",
                severity="error",
                suggested_fix="Record the movement once it has happened",
            ))

        min_reasonable_date = today - timedelta(days=self._settings.old_date_warning_days)
        if draft.value_date and draft.value_date < min_reasonable_date:
            issues.append(ValidationIssue(
                field="value_date",
                issue_type="suspicious_date",
                message=f"Date ({draft.value_date}) seems unusually old",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        max_amount = Decimal(str(self._settings.max_transaction_amount))
        if draft.amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount (€{draft.amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def validate(
        self,
        draft: Transaction,
        existing: Iterable[Record] = (),
        today: Optional[date] = None,
    ) -> ValidationResult:
        """
        Run the full validation pipeline.

        Args:
            draft: The transaction to validate
            existing: Stored records to check for duplicates
            today: Reference date (defaults to date.today())
        """
        today = today or date.today()
        all_issues = []

        schema_valid, schema_issues = self._validate_schema(draft)
        all_issues.extend(schema_issues)

        # Only run stage 2 if stage 1 passes
        semantic_valid = False
        duplicate_of = None
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(draft, today)
            all_issues.extend(semantic_issues)

            duplicate = self._detector.check(draft, existing)
            if duplicate.is_duplicate:
                duplicate_of = duplicate.colliding_id
                all_issues.append(ValidationIssue(
                    field="duplicate",
                    issue_type="potential_duplicate",
                    message=(
                        "This movement looks identical to an existing one "
                        f"(same date, amount and description): {duplicate_of}"
                    ),
                    severity="warning",
                    suggested_fix="Please verify this isn't a duplicate entry",
                ))

        warnings = [issue.message for issue in all_issues if issue.severity == "warning"]

        return ValidationResult(
            record_id=draft.id,
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            duplicate_of=duplicate_of,
            issues=all_issues,
            warnings=warnings,
        )


class ObligationValidator(_TwoStageValidator):
    """
    Validates obligations before they are inserted.

    Works on the common projection, so deadlines and both forecast kinds
    go through the same checks. Date rules only apply to obligations the
    user enters; generated drafts may legitimately fall earlier in the
    target year.
    """

    def _validate_schema(
        self,
        obligation: Obligation,
    ) -> tuple[bool, list[ValidationIssue]]:
        issues = []

        if obligation.expected_amount <= 0:
            issues.append(ValidationIssue(
                field="expected_amount",
                issue_type="invalid_value",
                message="Expected amount must be greater than zero",
                severity="error",
            ))

        if obligation.due_date is None:
            issues.append(ValidationIssue(
                field="due_date",
                issue_type="missing",
                message="Due date is required",
                severity="error",
            ))

        if not obligation.company:
            issues.append(ValidationIssue(
                field="company",
                issue_type="missing",
                message="Company is required",
                severity="error",
            ))

        min_length = self._settings.min_description_length
        if len(obligation.description.strip()) < min_length:
            issues.append(ValidationIssue(
                field="description",
                issue_type="too_short",
                message=f"Description must be at least {min_length} characters",
                severity="error",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def _validate_dates(
        self,
        obligation: Obligation,
        today: date,
    ) -> list[ValidationIssue]:
        if obligation.kind is ObligationKind.DEADLINE:
            if obligation.due_date < today:
                return [ValidationIssue(
                    field="due_date",
                    issue_type="past_date",
                    message=f"Due date ({obligation.due_date}) is in the past",
                    severity="error",
                )]
        elif obligation.due_date <= today:
            return [ValidationIssue(
                field="due_date",
                issue_type="past_date",
                message=f"Forecast date ({obligation.due_date}) must be in the future",
                severity="error",
                suggested_fix="Record movements that already happened as transactions",
            )]
        return []

    def validate(
        self,
        obligation: Obligation,
        existing: Iterable[Obligation] = (),
        today: Optional[date] = None,
        check_dates: bool = True,
    ) -> ValidationResult:
        """
        Run the full validation pipeline.

        Args:
            obligation: Projection of the record to insert
            existing: Stored obligations to check for duplicates
            today: Reference date (defaults to date.today())
            check_dates: Apply the past/future date rules
        """
        today = today or date.today()
        all_issues = []

        schema_valid, schema_issues = self._validate_schema(obligation)
        all_issues.extend(schema_issues)

        semantic_valid = False
        duplicate_of = None
        if schema_valid:
            date_issues = self._validate_dates(obligation, today) if check_dates else []
            all_issues.extend(date_issues)
            semantic_valid = not date_issues

            duplicate = self._detector.check(obligation, existing)
            if duplicate.is_duplicate:
                duplicate_of = duplicate.colliding_id
                all_issues.append(ValidationIssue(
                    field="duplicate",
                    issue_type="potential_duplicate",
                    message=(
                        "An obligation with the same date, amount and description "
                        f"already exists for this company: {duplicate_of}"
                    ),
                    severity="warning",
                ))

        warnings = [issue.message for issue in all_issues if issue.severity == "warning"]

        return ValidationResult(
            record_id=obligation.link_reference,
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            duplicate_of=duplicate_of,
            issues=all_issues,
            warnings=warnings,
        )
