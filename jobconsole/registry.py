"""
JobRegistry - The narrow interface jobconsole uses against a job registry.

The registry provides:
- Lookup of running jobs by identifier
- Enumeration of active identifiers
- Stopping and renaming jobs
- Creation of jobs as a side effect of launching a handler

The registry is the single source of truth for job state. Callers never
cache Job objects across commands; they re-read before acting.
"""

import itertools
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from jobconsole.errors import JobNotFound

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Job:
    """
    A registry-tracked handle to a running background task.

    Attributes:
        job_id: Registry-assigned identifier, immutable
        name: Display name, changed only through JobRegistry.rename
        start_time: When the registry started the job (UTC)
        ctx: Opaque execution context owned by the registry
    """
    job_id: int
    name: str
    start_time: datetime = field(default_factory=_utcnow)
    ctx: Any = None


class JobRegistry(ABC):
    """
    Abstract registry of running jobs.

    All calls are synchronous: they complete before returning, even when
    the underlying job runs asynchronously.
    """

    @abstractmethod
    def get(self, job_id: int) -> Job:
        """
        Get a job by identifier.

        Raises:
            JobNotFound: If no such job exists
        """
        pass

    @abstractmethod
    def all_identifiers(self) -> list[int]:
        """Return identifiers of all active jobs in ascending order."""
        pass

    @abstractmethod
    def start(self, name: str, ctx: Any = None) -> Job:
        """Create and register a new job, returning it with its identifier."""
        pass

    @abstractmethod
    def stop(self, job_id: int) -> None:
        """
        Stop a job and remove it from the registry.

        Raises:
            JobNotFound: If no such job exists
        """
        pass

    @abstractmethod
    def rename(self, job_id: int, name: str) -> Job:
        """
        Rename a job in place, keeping its identifier.

        Raises:
            JobNotFound: If no such job exists
        """
        pass

    def exists(self, job_id: int) -> bool:
        """Check whether a job with this identifier is active."""
        try:
            self.get(job_id)
        except JobNotFound:
            return False
        return True

    def jobs(self) -> list[Job]:
        """Return all active jobs ordered by identifier."""
        found = []
        for job_id in self.all_identifiers():
            try:
                found.append(self.get(job_id))
            except JobNotFound:
                # Stopped between enumeration and lookup
                continue
        return found


class InMemoryJobRegistry(JobRegistry):
    """
    Thread-safe in-process job registry.

    Identifiers come from a counter starting at 0 and are never reused,
    so a stopped job's identifier cannot silently point at a new job.

    Usage:
        registry = InMemoryJobRegistry()
        job = registry.start("Handler: multi/handler", ctx=handler)
        registry.rename(job.job_id, "https listener")
        registry.stop(job.job_id)
    """

    def __init__(self) -> None:
        self._jobs: dict[int, Job] = {}
        self._ids = itertools.count()
        self._lock = threading.Lock()

    def get(self, job_id: int) -> Job:
        with self._lock:
            job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFound(job_id)
        return job

    def all_identifiers(self) -> list[int]:
        with self._lock:
            return sorted(self._jobs)

    def start(self, name: str, ctx: Any = None) -> Job:
        with self._lock:
            job = Job(job_id=next(self._ids), name=name, ctx=ctx)
            self._jobs[job.job_id] = job
        logger.info(f"Started job {job.job_id}: {name}")
        return job

    def stop(self, job_id: int) -> None:
        with self._lock:
            job = self._jobs.pop(job_id, None)
        if job is None:
            raise JobNotFound(job_id)
        logger.info(f"Stopped job {job_id}: {job.name}")

    def rename(self, job_id: int, name: str) -> Job:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is not None:
                job.name = name
        if job is None:
            raise JobNotFound(job_id)
        logger.info(f"Renamed job {job_id} to {name!r}")
        return job

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)
