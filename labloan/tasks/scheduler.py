# labloan/tasks/scheduler.py
from __future__ import annotations

import atexit
import os

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger


def start_scheduler(app):
    """
    Runs the overdue scan in the background.
    - Skipped when SCHEDULER_ENABLED is off (tests) or in the reloader's watcher process.
    - A failing start only logs; the API keeps working without the scan.
    """
    if not app.config.get("SCHEDULER_ENABLED", True):
        app.logger.info("[scheduler] disabled by config.")
        return None

    # Werkzeug reloader: only the process with WERKZEUG_RUN_MAIN=true serves requests
    if app.debug and os.environ.get("WERKZEUG_RUN_MAIN") != "true":
        app.logger.info("[scheduler] Debug reloader secondary process: scheduler skipped.")
        return None

    # late import: tasks -> services -> models
    from labloan.tasks.overdue_check import run_overdue_check_job

    minutes = int(app.config.get("OVERDUE_CHECK_MINUTES", 60))

    try:
        scheduler = BackgroundScheduler(timezone="UTC")
        scheduler.add_job(
            func=run_overdue_check_job,
            args=[app],
            trigger=IntervalTrigger(minutes=minutes),
            id="overdue_check_job",
            replace_existing=True,
            max_instances=1,        # no overlapping scans
            coalesce=True,          # missed runs collapse into one
            misfire_grace_time=120,
        )
        scheduler.start()
    except Exception as e:
        app.logger.warning(f"[scheduler] could not start overdue scan: {e}")
        return None

    app.logger.info(f"[scheduler] Overdue check job started (every {minutes} minutes).")
    app.extensions["apscheduler"] = scheduler

    def _shutdown():
        if scheduler.running:
            scheduler.shutdown(wait=False)

    atexit.register(_shutdown)
    return scheduler
