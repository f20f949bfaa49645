"""Background worker components for reviewmate."""

from .celery_app import celery_app
from .tasks import run_all_automation, run_user_automation

__all__ = ["celery_app", "run_all_automation", "run_user_automation"]
