"""Data validation and consistency checker."""

import json
from datetime import UTC, datetime

from sqlalchemy.engine import Engine
from sqlmodel import Session

from zenith.constants import DUPLICATE_WINDOW_SECONDS, MAX_TITLE_LENGTH
from zenith.database.repository import ItemRepository, SubtaskRepository
from zenith.log import format_context, get_logger
from zenith.models.domain.validation import (
    DataConsistencyReport,
    FixReport,
    ValidationIssue,
    ValidationResult,
    ValidationWarning,
)
from zenith.models.rows import MindFlowItem
from zenith.services.performance_monitor import PerformanceMonitor
from zenith.types import ItemType, Severity
from zenith.utils import parse_datetime

logger = get_logger(__name__)

VALID_ITEM_TYPES = {item_type.value for item_type in ItemType}
JSON_FIELDS = ("chat_history", "meeting_details")
FIXABLE_ERROR_TYPES = ("invalid_json", "missing_financial_data", "orphaned_record")


def _as_aware(moment: datetime) -> datetime:
    return moment if moment.tzinfo is not None else moment.replace(tzinfo=UTC)


class DataValidator:
    """Checks the item and subtask tables for consistency problems.

    Validation is not read-only: simple problems (NULL JSON and boolean
    columns, finance fields on non-finance items, orphaned subtasks) are
    fixed while validating and listed in ``fixed_issues``.
    """

    def __init__(
        self,
        engine: Engine | None,
        monitor: PerformanceMonitor | None = None,
    ) -> None:
        self.engine = engine
        self.monitor = monitor
        self._failed_fixes: list[str] = []

    def validate_all_data(self) -> ValidationResult:
        """Validate all data in the database."""
        self._failed_fixes = []
        result = ValidationResult(is_valid=True)

        try:
            if self.engine is None:
                result.extend(self._connection_error())
            else:
                with Session(self.engine) as session:
                    items = ItemRepository(session, self.monitor)
                    subtasks = SubtaskRepository(session, self.monitor)

                    result.extend(self._validate_items(items))
                    result.extend(self._validate_subtasks(subtasks))
                    result.extend(self._check_orphaned_records(subtasks))
                    result.extend(self._check_duplicates(items))
        except Exception as e:
            logger.error(f"Validation failed: {e}")
            return ValidationResult(
                is_valid=False,
                errors=[
                    ValidationIssue(
                        type="validation_error",
                        message=f"Validation process failed: {e}",
                        severity=Severity.CRITICAL,
                    )
                ],
            )

        result.is_valid = not result.critical_errors
        logger.info(
            "Validation completed: "
            + format_context(
                errors=len(result.errors),
                warnings=len(result.warnings),
                fixed=len(result.fixed_issues),
            )
        )
        return result

    def fix_all_issues(self) -> FixReport:
        """Run a validation pass and report what it fixed."""
        validation = self.validate_all_data()
        report = FixReport(
            fixed=list(validation.fixed_issues), failed=list(self._failed_fixes)
        )

        logger.info(
            "Auto-fix completed: "
            + format_context(fixed=len(report.fixed), failed=len(report.failed))
        )
        return report

    def generate_consistency_report(self) -> DataConsistencyReport:
        validation = self.validate_all_data()
        total_items = self.get_item_count()

        item_errors = [e for e in validation.errors if e.item_id]

        def count_errors(error_type: str) -> int:
            return len([e for e in validation.errors if e.type == error_type])

        return DataConsistencyReport(
            total_items=total_items,
            valid_items=total_items - len(item_errors),
            invalid_items=len(item_errors),
            orphaned_subtasks=count_errors("orphaned_record"),
            duplicate_items=len(
                [w for w in validation.warnings if w.type == "potential_duplicate"]
            ),
            inconsistent_dates=count_errors("invalid_date"),
            missing_required_fields=count_errors("missing_required_field"),
            fixable_issues=len(
                [e for e in validation.errors if e.type in FIXABLE_ERROR_TYPES]
            ),
            critical_issues=len(validation.critical_errors),
        )

    def get_item_count(self) -> int:
        if self.engine is None:
            return 0

        try:
            with Session(self.engine) as session:
                return ItemRepository(session, self.monitor).count()
        except Exception as e:
            logger.error(f"Failed to get item count: {e}")
            return 0

    @staticmethod
    def _connection_error() -> ValidationResult:
        return ValidationResult(
            is_valid=False,
            errors=[
                ValidationIssue(
                    type="connection_error",
                    message="Database connection not available",
                    severity=Severity.CRITICAL,
                )
            ],
        )

    def _validate_items(self, repo: ItemRepository) -> ValidationResult:
        result = ValidationResult(is_valid=True)

        try:
            items = repo.list_all()
        except Exception as e:
            result.errors.append(
                ValidationIssue(
                    type="query_error",
                    message=f"Failed to validate items: {e}",
                    severity=Severity.HIGH,
                )
            )
            result.is_valid = False
            return result

        for item in items:
            errors, warnings = self.validate_item(item)
            result.errors.extend(errors)
            result.warnings.extend(warnings)
            result.fixed_issues.extend(self._auto_fix_item(repo, item))

        result.is_valid = not result.errors
        return result

    @staticmethod
    def validate_item(
        item: MindFlowItem,
    ) -> tuple[list[ValidationIssue], list[ValidationWarning]]:
        """Check a single item row without touching the database."""
        errors: list[ValidationIssue] = []
        warnings: list[ValidationWarning] = []

        def error(kind: str, message: str, field: str, severity: Severity) -> None:
            errors.append(
                ValidationIssue(
                    type=kind,
                    message=message,
                    item_id=item.id,
                    field=field,
                    severity=severity,
                )
            )

        def warning(kind: str, message: str, field: str, suggestion: str) -> None:
            warnings.append(
                ValidationWarning(
                    type=kind,
                    message=message,
                    item_id=item.id,
                    field=field,
                    suggestion=suggestion,
                )
            )

        # Required fields
        if not item.title or not item.title.strip():
            error(
                "missing_required_field",
                "Item title is required",
                "title",
                Severity.HIGH,
            )
        if not item.item_type:
            error(
                "missing_required_field",
                "Item type is required",
                "item_type",
                Severity.HIGH,
            )
        if not item.user_id:
            error(
                "missing_required_field",
                "User ID is required",
                "user_id",
                Severity.CRITICAL,
            )

        if item.item_type and item.item_type not in VALID_ITEM_TYPES:
            error(
                "invalid_value",
                f"Invalid item type: {item.item_type}",
                "item_type",
                Severity.MEDIUM,
            )

        # Dates
        if item.due_date_iso and parse_datetime(item.due_date_iso) is None:
            error(
                "invalid_date",
                "Invalid due date format",
                "due_date_iso",
                Severity.MEDIUM,
            )
        if item.created_at and parse_datetime(item.created_at) is None:
            error(
                "invalid_date",
                "Invalid created_at date format",
                "created_at",
                Severity.MEDIUM,
            )

        if item.item_type == ItemType.FINANCE.value:
            if item.amount is None:
                warning(
                    "missing_financial_data",
                    "Financial item missing amount",
                    "amount",
                    "Set amount to 0 if not applicable",
                )
            if not item.transaction_type:
                warning(
                    "missing_financial_data",
                    "Financial item missing transaction type",
                    "transaction_type",
                    "Set transaction type to Entrada or Saída",
                )

        for field in JSON_FIELDS:
            raw = getattr(item, field)
            if raw is None:
                continue
            try:
                json.loads(raw)
            except (TypeError, ValueError):
                error(
                    "invalid_json",
                    f"Invalid JSON in {field} field",
                    field,
                    Severity.MEDIUM,
                )

        if item.title and len(item.title) > MAX_TITLE_LENGTH:
            warning(
                "field_too_long",
                "Item title is very long",
                "title",
                "Consider shortening the title",
            )

        return errors, warnings

    def _auto_fix_item(self, repo: ItemRepository, item: MindFlowItem) -> list[str]:
        updates: dict[str, object] = {}
        fixes: list[str] = []

        if item.chat_history is None:
            updates["chat_history"] = "[]"
            fixes.append(f"Fixed null chat_history for item {item.id}")
        if item.transcript is None:
            updates["transcript"] = "[]"
            fixes.append(f"Fixed null transcript for item {item.id}")
        if item.completed is None:
            updates["completed"] = False
            fixes.append(f"Fixed null completed status for item {item.id}")
        if item.is_generating_subtasks is None:
            updates["is_generating_subtasks"] = False
            fixes.append(f"Fixed null is_generating_subtasks for item {item.id}")

        if item.item_type != ItemType.FINANCE.value:
            if item.amount is not None:
                updates["amount"] = None
                fixes.append(f"Cleared amount for non-financial item {item.id}")
            if item.transaction_type is not None:
                updates["transaction_type"] = None
                fixes.append(
                    f"Cleared transaction_type for non-financial item {item.id}"
                )

        if not updates:
            return []

        try:
            repo.update_fields(item.id, **updates)
        except Exception as e:
            logger.error(f"Failed to apply fixes: {e} " + format_context(item_id=item.id))
            self._failed_fixes.extend(fixes)
            return []

        return fixes

    def _validate_subtasks(self, repo: SubtaskRepository) -> ValidationResult:
        result = ValidationResult(is_valid=True)

        try:
            subtasks = repo.list_all()
        except Exception as e:
            result.errors.append(
                ValidationIssue(
                    type="query_error",
                    message=f"Failed to validate subtasks: {e}",
                    severity=Severity.HIGH,
                )
            )
            result.is_valid = False
            return result

        for subtask in subtasks:
            if not subtask.title or not subtask.title.strip():
                result.errors.append(
                    ValidationIssue(
                        type="missing_required_field",
                        message="Subtask title is required",
                        item_id=subtask.id,
                        field="title",
                        severity=Severity.MEDIUM,
                    )
                )
            if not subtask.parent_item_id:
                result.errors.append(
                    ValidationIssue(
                        type="missing_required_field",
                        message="Subtask parent_item_id is required",
                        item_id=subtask.id,
                        field="parent_item_id",
                        severity=Severity.HIGH,
                    )
                )

        result.is_valid = not result.errors
        return result

    def _check_orphaned_records(self, repo: SubtaskRepository) -> ValidationResult:
        result = ValidationResult(is_valid=True)

        try:
            orphans = repo.find_orphaned()
        except Exception as e:
            result.errors.append(
                ValidationIssue(
                    type="query_error",
                    message=f"Failed to check orphaned records: {e}",
                    severity=Severity.MEDIUM,
                )
            )
            result.is_valid = False
            return result

        for subtask in orphans:
            result.errors.append(
                ValidationIssue(
                    type="orphaned_record",
                    message=(
                        f"Orphaned subtask found (parent item "
                        f"{subtask.parent_item_id} does not exist)"
                    ),
                    item_id=subtask.id,
                    severity=Severity.MEDIUM,
                )
            )

            try:
                repo.delete(subtask.id)
            except Exception as e:
                logger.error(f"Failed to delete orphaned subtask {subtask.id}: {e}")
                self._failed_fixes.append(f"Delete orphaned subtask {subtask.id}")
                continue
            result.fixed_issues.append(f"Deleted orphaned subtask {subtask.id}")

        result.is_valid = not result.errors
        return result

    def _check_duplicates(self, repo: ItemRepository) -> ValidationResult:
        """Flag items sharing user, title and type created within a minute."""
        result = ValidationResult(is_valid=True)

        try:
            items = repo.list_for_duplicate_check()
        except Exception as e:
            result.warnings.append(
                ValidationWarning(
                    type="check_failed",
                    message=f"Could not check for duplicates: {e}",
                    suggestion="Manual review recommended",
                )
            )
            return result

        seen: dict[str, MindFlowItem] = {}
        for item in items:
            key = f"{item.user_id}-{item.title}-{item.item_type}"
            existing = seen.get(key)
            if existing is None:
                seen[key] = item
                continue

            created = parse_datetime(item.created_at)
            existing_created = parse_datetime(existing.created_at)
            if created is None or existing_created is None:
                continue

            delta = _as_aware(created) - _as_aware(existing_created)
            if abs(delta.total_seconds()) < DUPLICATE_WINDOW_SECONDS:
                result.warnings.append(
                    ValidationWarning(
                        type="potential_duplicate",
                        message="Potential duplicate item found",
                        item_id=item.id,
                        suggestion=(
                            f"Similar to item {existing.id} created at similar time"
                        ),
                    )
                )

        return result
