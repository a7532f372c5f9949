"""Thread-safe in-memory store for render job status."""
import logging
import random
import string
import threading
import time
from typing import Dict, Optional

from ..schemas.render import JobStatus

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def new_job_id() -> str:
    """Job ids look like ``render_<ms timestamp>_<7 random chars>``."""
    suffix = ''.join(random.choices(_ID_ALPHABET, k=7))
    return f"render_{int(time.time() * 1000)}_{suffix}"


class InMemoryJobStore:
    """
    Job statuses keyed by job id.

    Every read returns a copy, so callers never observe a status while
    another thread is updating it.
    """

    def __init__(self):
        self._jobs: Dict[str, JobStatus] = {}
        self._lock = threading.Lock()

    def create(self) -> str:
        with self._lock:
            job_id = new_job_id()
            while job_id in self._jobs:
                job_id = new_job_id()
            self._jobs[job_id] = JobStatus()
        logger.info(f"Created job {job_id}")
        return job_id

    def update(self, job_id: str, **fields) -> JobStatus:
        """
        Apply field updates to a job.

        Raises:
            KeyError: If the job does not exist
        """
        with self._lock:
            current = self._jobs[job_id]
            updated = JobStatus.model_validate({**current.model_dump(), **fields})
            self._jobs[job_id] = updated
            return updated.model_copy()

    def get(self, job_id: str) -> Optional[JobStatus]:
        with self._lock:
            status = self._jobs.get(job_id)
            return status.model_copy() if status else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)


# Global store instance (lazy-loaded)
_job_store_instance: Optional[InMemoryJobStore] = None


def get_job_store() -> InMemoryJobStore:
    """Get or initialize the process-wide job store."""
    global _job_store_instance

    if _job_store_instance is None:
        _job_store_instance = InMemoryJobStore()

    return _job_store_instance
