"""Consumer-side delivery pipeline: per-job processing and retry scheduling."""

from .processor import JobOutcome, NotificationProcessor
from .retry_scheduler import RetryScheduler

__all__ = ["JobOutcome", "NotificationProcessor", "RetryScheduler"]
