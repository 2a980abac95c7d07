from .jobs import MaintenanceJobs
from .scheduler import MaintenanceScheduler, calculate_next_run

__all__ = ["MaintenanceJobs", "MaintenanceScheduler", "calculate_next_run"]
