"""
Tracked background batch generation.

Each submitted batch runs as an owned asyncio task whose job record is
updated as progress is reported, so completion, failure and cancellation
are all observable through the record. Finished records beyond
``max_jobs`` are pruned oldest first.
"""
import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from ..utils.exceptions import JobNotFoundError
from .models import BatchJob, BatchProgress, CompanyProfile, GenerationOptions, JobStatus
from .orchestrator import AIOrchestrator

logger = logging.getLogger(__name__)

JobCallback = Callable[[BatchJob], None]

DEFAULT_MAX_JOBS = 100


class BatchJobManager:
    """Runs batch generations in the background and tracks their status"""

    def __init__(self,
                 orchestrator: AIOrchestrator,
                 on_update: Optional[JobCallback] = None,
                 max_jobs: int = DEFAULT_MAX_JOBS):
        if max_jobs < 1:
            raise ValueError("max_jobs must be at least 1")
        self.orchestrator = orchestrator
        self.max_jobs = max_jobs
        self._on_update = on_update
        self._jobs: Dict[str, BatchJob] = {}
        self._tasks: Dict[str, asyncio.Task] = {}

    def submit(self,
               profile: CompanyProfile,
               framework: str,
               options: Optional[GenerationOptions] = None) -> BatchJob:
        """Start a batch job; must be called from a running event loop"""
        job = BatchJob(job_id=str(uuid.uuid4()), framework=framework)
        self._jobs[job.job_id] = job
        task = asyncio.create_task(
            self._run(job, profile, framework, options),
            name=f"batch-job-{job.job_id}",
        )
        self._tasks[job.job_id] = task
        task.add_done_callback(lambda t: self._task_done(job, t))
        logger.info(f"Submitted batch job {job.job_id} for {framework}")
        self.prune()
        self._notify(job)
        return job

    def get(self, job_id: str) -> BatchJob:
        try:
            return self._jobs[job_id]
        except KeyError:
            raise JobNotFoundError(f"Unknown batch job: {job_id}")

    def list_jobs(self, status: Optional[JobStatus] = None) -> List[BatchJob]:
        jobs = list(self._jobs.values())
        if status is not None:
            jobs = [job for job in jobs if job.status == status]
        return jobs

    def prune(self) -> int:
        """
        Drop the oldest finished job records until at most ``max_jobs`` remain.

        Pending and running jobs are never dropped. Returns the number removed.
        """
        excess = len(self._jobs) - self.max_jobs
        if excess <= 0:
            return 0
        finished = [job_id for job_id, job in self._jobs.items() if job.is_finished]
        removed = finished[:excess]
        for job_id in removed:
            del self._jobs[job_id]
        if removed:
            logger.debug(f"Pruned {len(removed)} finished batch jobs")
        return len(removed)

    async def wait(self, job_id: str, timeout: Optional[float] = None) -> BatchJob:
        """
        Wait for a job to finish and return its record.

        Raises asyncio.TimeoutError if the job is still running after ``timeout``.
        """
        job = self.get(job_id)
        task = self._tasks.get(job_id)
        if task is not None and not task.done():
            done, _ = await asyncio.wait([task], timeout=timeout)
            if not done:
                raise asyncio.TimeoutError(f"Batch job {job_id} still running")
        return job

    async def cancel(self, job_id: str) -> BatchJob:
        job = self.get(job_id)
        task = self._tasks.get(job_id)
        if task is not None and not task.done():
            task.cancel()
            await asyncio.wait([task])
        return job

    def _task_done(self, job: BatchJob, task: asyncio.Task):
        self._tasks.pop(job.job_id, None)
        # A task cancelled before its first step never enters _run
        if task.cancelled() and not job.is_finished:
            job.status = JobStatus.CANCELLED
            job.finished_at = datetime.now(timezone.utc)
            self._notify(job)

    async def _run(self,
                   job: BatchJob,
                   profile: CompanyProfile,
                   framework: str,
                   options: Optional[GenerationOptions]):
        job.status = JobStatus.RUNNING
        job.started_at = datetime.now(timezone.utc)
        self._notify(job)

        def record_progress(progress: BatchProgress):
            job.progress = progress
            self._notify(job)

        try:
            job.results = await self.orchestrator.generate_batch(
                profile, framework, options, on_progress=record_progress
            )
            job.status = JobStatus.COMPLETED
        except asyncio.CancelledError:
            job.status = JobStatus.CANCELLED
            logger.warning(f"Batch job {job.job_id} cancelled")
            raise
        except Exception as e:
            job.status = JobStatus.FAILED
            job.error = str(e)
            logger.error(f"Batch job {job.job_id} failed: {e}")
        finally:
            job.finished_at = datetime.now(timezone.utc)
            self._notify(job)

    def _notify(self, job: BatchJob):
        if self._on_update is None:
            return
        try:
            self._on_update(job)
        except Exception as e:
            logger.error(f"Batch job update callback failed for {job.job_id}: {e}")
