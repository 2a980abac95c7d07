"""Data validation domain models."""

from pydantic import BaseModel, Field

from zenith.types import Severity


class ValidationIssue(BaseModel):
    """A data consistency error."""

    type: str
    message: str
    item_id: str | None = None
    field: str | None = None
    severity: Severity


class ValidationWarning(BaseModel):
    """A data consistency warning with an optional suggestion."""

    type: str
    message: str
    item_id: str | None = None
    field: str | None = None
    suggestion: str | None = None


class ValidationResult(BaseModel):
    """Result of a validation pass."""

    is_valid: bool
    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[ValidationWarning] = Field(default_factory=list)
    fixed_issues: list[str] = Field(default_factory=list)

    def extend(self, other: "ValidationResult") -> None:
        """Merge another result's findings into this one."""
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        self.fixed_issues.extend(other.fixed_issues)

    @property
    def critical_errors(self) -> list[ValidationIssue]:
        return [e for e in self.errors if e.severity == Severity.CRITICAL]


class FixReport(BaseModel):
    """Outcome of an auto-fix pass."""

    fixed: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)


class DataConsistencyReport(BaseModel):
    """Summary counts derived from a validation pass."""

    total_items: int
    valid_items: int
    invalid_items: int
    orphaned_subtasks: int
    duplicate_items: int
    inconsistent_dates: int
    missing_required_fields: int
    fixable_issues: int
    critical_issues: int
