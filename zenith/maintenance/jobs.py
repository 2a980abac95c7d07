"""Built-in maintenance jobs."""

from datetime import UTC, datetime, timedelta

from sqlalchemy.engine import Engine
from sqlmodel import Session

from zenith.config import Settings
from zenith.config import settings as default_settings
from zenith.database.repository import ItemRepository, SubtaskRepository
from zenith.models.domain.maintenance import (
    MaintenanceResult,
    MaintenanceTaskDefinition,
)
from zenith.services.data_validator import DataValidator
from zenith.services.performance_monitor import PerformanceMonitor
from zenith.types import Frequency, Priority

NO_CONNECTION = "Database connection not available"

INDEX_RECOMMENDATIONS = [
    "Consider adding index on (user_id, created_at) for user queries",
    "Consider adding index on due_date_iso for date filtering",
    "Consider full-text index on title for text search",
]


class MaintenanceJobs:
    """The housekeeping jobs registered with the maintenance scheduler.

    Every job reports its own failures as a failed result; the scheduler
    measures and fills in the duration.
    """

    def __init__(
        self,
        monitor: PerformanceMonitor,
        validator: DataValidator,
        engine: Engine | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.monitor = monitor
        self.validator = validator
        self.engine = engine
        self.settings = settings or default_settings

    def definitions(self) -> list[MaintenanceTaskDefinition]:
        """Definitions for all built-in jobs."""
        return [
            MaintenanceTaskDefinition(
                id="cleanup_old_metrics",
                name="Cleanup Old Performance Metrics",
                description=(
                    f"Remove performance metrics older than "
                    f"{self.settings.metrics_retention_hours} hours"
                ),
                frequency=Frequency.DAILY,
                priority=Priority.MEDIUM,
                estimated_duration=2,
                run=self.cleanup_old_metrics,
            ),
            MaintenanceTaskDefinition(
                id="validate_data_consistency",
                name="Data Consistency Validation",
                description="Check and fix data consistency issues",
                frequency=Frequency.DAILY,
                priority=Priority.HIGH,
                estimated_duration=10,
                run=self.validate_data_consistency,
            ),
            MaintenanceTaskDefinition(
                id="cleanup_orphaned_records",
                name="Cleanup Orphaned Records",
                description="Remove orphaned subtasks and other dangling references",
                frequency=Frequency.WEEKLY,
                priority=Priority.MEDIUM,
                estimated_duration=5,
                run=self.cleanup_orphaned_records,
            ),
            MaintenanceTaskDefinition(
                id="optimize_database_indexes",
                name="Database Index Optimization",
                description="Analyze and optimize database indexes",
                frequency=Frequency.WEEKLY,
                priority=Priority.LOW,
                estimated_duration=15,
                run=self.optimize_indexes,
            ),
            MaintenanceTaskDefinition(
                id="backup_verification",
                name="Backup Verification",
                description="Verify database backups are working correctly",
                frequency=Frequency.DAILY,
                priority=Priority.CRITICAL,
                estimated_duration=3,
                run=self.verify_backups,
            ),
            MaintenanceTaskDefinition(
                id="cleanup_old_sessions",
                name="Cleanup Old Sessions",
                description="Remove expired user sessions and temporary data",
                frequency=Frequency.HOURLY,
                priority=Priority.LOW,
                estimated_duration=1,
                run=self.cleanup_old_sessions,
            ),
            MaintenanceTaskDefinition(
                id="update_statistics",
                name="Update Database Statistics",
                description="Update table statistics for query optimization",
                frequency=Frequency.DAILY,
                priority=Priority.MEDIUM,
                estimated_duration=5,
                run=self.update_statistics,
            ),
            MaintenanceTaskDefinition(
                id="compress_old_data",
                name="Compress Old Data",
                description="Compress or archive old data to save space",
                frequency=Frequency.MONTHLY,
                priority=Priority.LOW,
                estimated_duration=30,
                run=self.compress_old_data,
            ),
        ]

    async def cleanup_old_metrics(self) -> MaintenanceResult:
        try:
            removed = self.monitor.clear_old_metrics(
                self.settings.metrics_retention_hours
            )
        except Exception as e:
            return MaintenanceResult(
                success=False, message=f"Failed to cleanup old metrics: {e}"
            )

        return MaintenanceResult(
            success=True,
            message="Old performance metrics cleaned up successfully",
            details={"removed_metrics": removed},
        )

    async def validate_data_consistency(self) -> MaintenanceResult:
        try:
            validation = self.validator.validate_all_data()
            fixes = self.validator.fix_all_issues()
        except Exception as e:
            return MaintenanceResult(
                success=False, message=f"Data validation failed: {e}"
            )

        fixed = len(validation.fixed_issues) + len(fixes.fixed)
        return MaintenanceResult(
            success=not validation.critical_errors,
            message=f"Data validation completed. Fixed {fixed} issues.",
            details={
                "errors": len(validation.errors),
                "warnings": len(validation.warnings),
                "fixed": fixed,
                "failed": len(fixes.failed),
            },
        )

    async def cleanup_orphaned_records(self) -> MaintenanceResult:
        if self.engine is None:
            return MaintenanceResult(success=False, message=NO_CONNECTION)

        try:
            with Session(self.engine) as session:
                subtasks = SubtaskRepository(session, self.monitor)
                orphan_ids = [s.id for s in subtasks.find_orphaned()]
                deleted = subtasks.delete_by_ids(orphan_ids)
        except Exception as e:
            return MaintenanceResult(
                success=False, message=f"Failed to cleanup orphaned records: {e}"
            )

        return MaintenanceResult(
            success=True,
            message=f"Cleaned up {deleted} orphaned records",
            details={"deleted_subtasks": deleted},
        )

    async def optimize_indexes(self) -> MaintenanceResult:
        """Report index advice; the schema itself is never changed."""
        if self.engine is None:
            return MaintenanceResult(success=False, message=NO_CONNECTION)

        return MaintenanceResult(
            success=True,
            message="Index optimization analysis completed",
            details={
                "recommendations": list(INDEX_RECOMMENDATIONS),
                "query_pattern_recommendations": (
                    self.monitor.generate_index_recommendations()
                ),
            },
        )

    async def verify_backups(self) -> MaintenanceResult:
        """Use a cheap count query as a connectivity check."""
        if self.engine is None:
            return MaintenanceResult(
                success=False,
                message=f"{NO_CONNECTION} for backup verification",
            )

        try:
            with Session(self.engine) as session:
                item_count = ItemRepository(session, self.monitor).count()
        except Exception as e:
            return MaintenanceResult(
                success=False, message=f"Backup verification failed: {e}"
            )

        return MaintenanceResult(
            success=True,
            message="Backup verification completed successfully",
            details={"item_count": item_count},
        )

    async def cleanup_old_sessions(self) -> MaintenanceResult:
        # Sessions are owned by the auth provider
        return MaintenanceResult(success=True, message="Session cleanup completed")

    async def update_statistics(self) -> MaintenanceResult:
        if self.engine is None:
            return MaintenanceResult(success=False, message=NO_CONNECTION)

        try:
            with Session(self.engine) as session:
                items = ItemRepository(session, self.monitor)
                stats = {
                    "total_items": items.count(),
                    "completed_items": items.count_completed(),
                    "items_by_type": items.count_by_type(),
                }
        except Exception as e:
            return MaintenanceResult(
                success=False, message=f"Statistics update failed: {e}"
            )

        return MaintenanceResult(
            success=True, message="Statistics updated successfully", details=stats
        )

    async def compress_old_data(self) -> MaintenanceResult:
        """Count completed items old enough to archive (dry run)."""
        if self.engine is None:
            return MaintenanceResult(success=False, message=NO_CONNECTION)

        cutoff = datetime.now(UTC) - timedelta(days=self.settings.archive_age_days)
        try:
            with Session(self.engine) as session:
                archivable = ItemRepository(session, self.monitor).list_archivable(
                    cutoff.isoformat()
                )
        except Exception as e:
            return MaintenanceResult(
                success=False, message=f"Data compression failed: {e}"
            )

        return MaintenanceResult(
            success=True,
            message=(
                f"Data compression analysis completed. "
                f"{len(archivable)} items could be archived."
            ),
            details={"archivable_items": len(archivable)},
        )
