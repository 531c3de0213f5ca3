"""
Background scan queue and worker for Site Audit
"""
import asyncio
import logging
import uuid
from contextlib import suppress
from typing import Dict, Optional

from models import AnalysisRequest, ScanJob, ScanJobStatus
from monitoring import MetricsCollector

logger = logging.getLogger(__name__)


class QueueFullError(Exception):
    """Raised when a bounded queue cannot accept another job"""


class ScanQueue:
    """FIFO of pending scans plus the status of every job seen so far"""

    def __init__(self, max_pending: int = 0):
        self.max_pending = max(0, max_pending)
        self._queue: "asyncio.Queue[ScanJob]" = asyncio.Queue(maxsize=self.max_pending)
        self._statuses: Dict[str, ScanJobStatus] = {}

    @property
    def pending_count(self) -> int:
        return self._queue.qsize()

    def enqueue(self, request: AnalysisRequest, save_history: bool = True) -> str:
        """
        Register a job as Pending and publish it for the worker

        Raises:
            QueueFullError: if the queue is bounded and full
        """
        if self.max_pending and self._queue.full():
            raise QueueFullError(f"Scan queue is full ({self.max_pending} pending jobs)")

        job = ScanJob(id=uuid.uuid4().hex, request=request, save_history=save_history)
        self._statuses[job.id] = ScanJobStatus.pending(job.id)
        self._queue.put_nowait(job)

        logger.info(f"Queued scan {job.id} for {request.url} ({request.mode.value})")
        return job.id

    async def dequeue(self) -> ScanJob:
        return await self._queue.get()

    def task_done(self):
        self._queue.task_done()

    def get_status(self, job_id: str) -> Optional[ScanJobStatus]:
        return self._statuses.get(job_id)

    def set_status(self, status: ScanJobStatus):
        self._statuses[status.id] = status


class ScanWorker:
    """Single consumer that runs queued scans one at a time"""

    def __init__(self, scan_queue: ScanQueue, auditor, metrics_collector: Optional[MetricsCollector] = None):
        self.scan_queue = scan_queue
        self.auditor = auditor
        self.metrics_collector = metrics_collector
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        """Start the background loop on the running event loop"""
        if self.is_running:
            logger.warning("Scan worker is already running")
            return
        self._task = asyncio.get_running_loop().create_task(self.run())
        logger.info("Scan worker started")

    async def stop(self):
        """Cancel the background loop and wait for it to finish"""
        if self._task is None:
            return
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Scan worker stopped")

    async def run(self):
        while True:
            job = await self.scan_queue.dequeue()
            try:
                await self.process(job)
            finally:
                self.scan_queue.task_done()

    async def process(self, job: ScanJob):
        """Run one job and record its final status"""
        self.scan_queue.set_status(ScanJobStatus.processing(job.id))
        try:
            result = await self.auditor.analyze(job.request, job.save_history)
        except Exception as e:
            logger.error(f"Scan job {job.id} failed: {e}", exc_info=True)
            self.scan_queue.set_status(ScanJobStatus.failed(job.id, str(e) or type(e).__name__))
            if self.metrics_collector is not None:
                self.metrics_collector.record_job_failure()
            return

        self.scan_queue.set_status(ScanJobStatus.completed(job.id, result))
        logger.info(f"Scan job {job.id} completed with overall score {result.score.overall}")
