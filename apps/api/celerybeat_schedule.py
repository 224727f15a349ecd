"""
Celery Beat Schedule Configuration

Defines periodic tasks that run on a schedule.
"""

from celery.schedules import crontab

from core.config import settings

# Schedule configuration
beat_schedule = {
    # Auto-close sweep. Any open day whose lock window has passed is
    # moved to auto_closed; the sweep is idempotent so overlap is harmless.
    'auto-close-pending-days': {
        'task': 'tasks.auto_close_pending_days',
        'schedule': crontab(minute=f'*/{settings.AUTO_CLOSE_SWEEP_MINUTES}'),
    },
    # Missed-day escalation - daily at 6 AM UTC
    'escalate-missed-days': {
        'task': 'tasks.escalate_missed_days',
        'schedule': crontab(hour=6, minute=0),
    },
    # Status summary repair - Sundays at 3 AM UTC
    'backfill-status-summaries': {
        'task': 'tasks.backfill_status_summaries',
        'schedule': crontab(hour=3, minute=0, day_of_week=0),
    },
}
