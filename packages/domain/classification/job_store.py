"""
Classification Job Store - async job lifecycle and recently classified items

Jobs:
- pending → completed | failed, terminal states never change
- Expire 30 minutes after creation (purged on create/get)
- Jobs live in a plain dict touched only with single-key operations

Recent items:
- Fixed capacity of 10, oldest evicted first
- Read most-recent-first
- Guarded by one lock (small, frequently touched)
"""
import threading
import uuid
from collections import deque
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

import structlog

from packages.domain.classification.schemas import ClassificationResult, JobStatus, RecentEntry

logger = structlog.get_logger()

RECENT_CAPACITY = 10
DEFAULT_JOB_TTL = timedelta(minutes=30)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ClassificationJob:
    """State of one classification request"""
    id: str
    created_at: datetime
    request_id: Optional[str] = None
    status: JobStatus = JobStatus.PENDING
    result: Optional[ClassificationResult] = None
    error: Optional[str] = None
    completed_at: Optional[datetime] = None


class ClassificationJobStore:
    """
    Process-scoped store for classification jobs and recent results.

    Usage:
        store = ClassificationJobStore()
        job = store.create_job(request_id="abc")
        store.complete_job(job.id, result)
        store.try_get_job(job.id).status   # JobStatus.COMPLETED
    """

    def __init__(
        self,
        job_ttl: timedelta = DEFAULT_JOB_TTL,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.job_ttl = job_ttl
        self._clock = clock
        self._jobs: Dict[str, ClassificationJob] = {}
        self._recent = deque(maxlen=RECENT_CAPACITY)
        self._recent_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    def create_job(self, request_id: Optional[str] = None) -> ClassificationJob:
        """Allocate a new pending job (expired jobs are purged first)."""
        self._purge_expired()

        job = ClassificationJob(
            id=str(uuid.uuid4()),
            created_at=self._clock(),
            request_id=request_id,
        )
        self._jobs[job.id] = job

        logger.info("job_created", job_id=job.id, request_id=request_id)
        return replace(job)

    def try_get_job(self, job_id: str) -> Optional[ClassificationJob]:
        """Snapshot of a job, or None when unknown or expired."""
        self._purge_expired()
        job = self._jobs.get(job_id)
        return replace(job) if job is not None else None

    def complete_job(self, job_id: str, result: ClassificationResult) -> bool:
        """
        Mark a job completed.

        Returns:
            True if the job transitioned, False if it was absent or already terminal
        """
        job = self._jobs.get(job_id)
        if job is None or job.status.is_terminal:
            logger.debug("job_complete_ignored", job_id=job_id, found=job is not None)
            return False

        job.result = result
        job.completed_at = self._clock()
        job.status = JobStatus.COMPLETED

        logger.info("job_completed", job_id=job_id, matches=len(result.matches))
        return True

    def fail_job(self, job_id: str, message: str) -> bool:
        """
        Mark a job failed.

        Returns:
            True if the job transitioned, False if it was absent or already terminal
        """
        job = self._jobs.get(job_id)
        if job is None or job.status.is_terminal:
            logger.debug("job_fail_ignored", job_id=job_id, found=job is not None)
            return False

        job.error = message
        job.completed_at = self._clock()
        job.status = JobStatus.FAILED

        logger.info("job_failed", job_id=job_id, error=message)
        return True

    def _purge_expired(self) -> None:
        cutoff = self._clock() - self.job_ttl
        for job_id, job in list(self._jobs.items()):
            if job.created_at < cutoff:
                self._jobs.pop(job_id, None)
                logger.debug("job_expired", job_id=job_id, status=job.status.value)

    # ------------------------------------------------------------------
    # Recent items
    # ------------------------------------------------------------------

    def record_recent(self, code: str, description: str) -> None:
        """Remember a classified item. Blank codes are ignored."""
        if not code or not code.strip():
            return

        with self._recent_lock:
            self._recent.append(RecentEntry(code=code, description=description or ""))

    def get_recent(self) -> List[RecentEntry]:
        """Recent items, most recent first."""
        with self._recent_lock:
            return list(reversed(self._recent))
