"""Top-of-the-hour triggering of the monitor scans."""

from apscheduler.schedulers.background import BackgroundScheduler

from .monitor import ExceptionMonitor


def build_scheduler(monitor: ExceptionMonitor) -> BackgroundScheduler:
    """
    Create (but do not start) the scheduler for both hourly scans.

    Each job catches its own failures, so a bad run never removes the job.
    """
    scheduler = BackgroundScheduler()
    scheduler.add_job(
        monitor.run_exception_scan,
        "cron",
        minute=0,
        id="exception-scan",
        coalesce=True,
        max_instances=1,
    )
    scheduler.add_job(
        monitor.run_adapter_error_scan,
        "cron",
        minute=0,
        id="adapter-error-scan",
        coalesce=True,
        max_instances=1,
    )
    return scheduler
