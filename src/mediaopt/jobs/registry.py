"""In-memory registry of active jobs.

Maps a job key (canonical input path) to the handle of the one job that is
active for it. The lock is held only for the map operation itself; no
process control or I/O happens under it.
"""

from __future__ import annotations

import logging
import threading

from mediaopt.jobs.models import JobHandle, JobKey

logger = logging.getLogger(__name__)


class JobRegistry:
    """Thread-safe single-flight map from job key to active JobHandle.

    Instances are created by the caller and injected into JobController, so
    independent registries (one per test, say) never share state.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._jobs: dict[JobKey, JobHandle] = {}

    def register(self, key: JobKey, handle: JobHandle) -> JobHandle | None:
        """Install ``handle`` as the active job for ``key``.

        Returns:
            The handle it replaced, or None. The caller is responsible for
            cancelling the returned handle.
        """
        with self._lock:
            previous = self._jobs.get(key)
            self._jobs[key] = handle

        if previous is not None:
            logger.info(
                "Job %s supersedes %s",
                handle.job_id,
                previous.job_id,
                extra={"previous_job_id": previous.job_id},
            )
        return previous

    def remove(self, key: JobKey, handle: JobHandle | None = None) -> bool:
        """Remove the entry for ``key``.

        Idempotent. When ``handle`` is given the entry is only removed if it
        is still that handle, so a superseded job's teardown cannot evict
        its successor.

        Returns:
            True if an entry was removed.
        """
        with self._lock:
            current = self._jobs.get(key)
            if current is None:
                return False
            if handle is not None and current is not handle:
                return False
            del self._jobs[key]
            return True

    def lookup(self, key: JobKey) -> JobHandle | None:
        with self._lock:
            return self._jobs.get(key)

    def active_keys(self) -> list[JobKey]:
        with self._lock:
            return list(self._jobs)

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._jobs
