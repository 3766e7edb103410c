"""Background job queue for backup creation.

Backup runs are handed to a named in-process queue and executed by a
daemon worker that invokes the configured backup command.
"""

from __future__ import annotations

import queue
import subprocess
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from ..core.trigger import BackupJobTrigger

_STOP = object()


def _log(msg: str) -> None:
    """Print with flush for reliable output in daemon threads."""
    print(msg, flush=True)


@dataclass(frozen=True)
class CreateBackupJob:
    """A queued backup run."""

    option: str = ""

    def command(self, base_command: Sequence[str]) -> List[str]:
        """Build the argv; an option like 'only-db' becomes '--only-db'."""
        argv = list(base_command)
        if self.option:
            argv.append(f"--{self.option.lstrip('-')}")
        return argv


class BackupJobWorker(threading.Thread):
    """Drains one queue, running jobs one at a time."""

    def __init__(self, queue_name: str, jobs: "queue.Queue", command: Sequence[str], timeout: Optional[int] = None):
        super().__init__(name=f"backup-job-worker-{queue_name}", daemon=True)
        self.queue_name = queue_name
        self.jobs = jobs
        self.command = list(command)
        self.timeout = timeout
        self.completed = 0
        self.failed = 0

    def run(self) -> None:
        _log(f"[jobs:{self.queue_name}] Worker started")
        while True:
            job = self.jobs.get()
            try:
                if job is _STOP:
                    break
                self._run_job(job)
            finally:
                self.jobs.task_done()
        _log(f"[jobs:{self.queue_name}] Worker stopped")

    def _run_job(self, job: CreateBackupJob) -> None:
        argv = job.command(self.command)
        _log(f"[jobs:{self.queue_name}] Running {' '.join(argv)}")
        try:
            result = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            self.failed += 1
            _log(f"[jobs:{self.queue_name}] Backup timed out after {self.timeout}s")
            return
        except OSError as e:
            self.failed += 1
            _log(f"[jobs:{self.queue_name}] Backup could not start: {e}")
            return

        if result.returncode != 0:
            self.failed += 1
            detail = (result.stderr or result.stdout or "").strip()
            _log(f"[jobs:{self.queue_name}] Backup failed (exit {result.returncode}): {detail}")
            return

        self.completed += 1
        _log(f"[jobs:{self.queue_name}] Backup finished")


class JobQueue(BackupJobTrigger):
    """Named FIFO queues, each drained by its own worker thread.

    Workers start lazily on the first job for a queue.
    """

    def __init__(self, command: Sequence[str], timeout: Optional[int] = None):
        self.command = list(command)
        self.timeout = timeout
        self._queues: Dict[str, "queue.Queue"] = {}
        self._workers: Dict[str, BackupJobWorker] = {}
        self._lock = threading.Lock()

    def enqueue(self, option: str, queue_name: str) -> None:
        self._queue_for(queue_name).put(CreateBackupJob(option=option or ""))

    def _queue_for(self, queue_name: str) -> "queue.Queue":
        with self._lock:
            jobs = self._queues.get(queue_name)
            if jobs is None:
                jobs = queue.Queue()
                worker = BackupJobWorker(queue_name, jobs, self.command, timeout=self.timeout)
                self._queues[queue_name] = jobs
                self._workers[queue_name] = worker
                worker.start()
            return jobs

    def pending(self, queue_name: str) -> int:
        """Approximate number of jobs waiting on ``queue_name``."""
        jobs = self._queues.get(queue_name)
        return jobs.qsize() if jobs else 0

    def join(self) -> None:
        """Block until every queued job has been processed."""
        for jobs in list(self._queues.values()):
            jobs.join()

    def stop_all(self, timeout: float = 5.0) -> None:
        """Stop all workers after their current job."""
        with self._lock:
            workers = list(self._workers.items())
        for name, worker in workers:
            self._queues[name].put(_STOP)
        for _, worker in workers:
            worker.join(timeout=timeout)

    def get_all_status(self) -> Dict[str, Dict[str, int]]:
        return {
            name: {
                "pending": self.pending(name),
                "completed": worker.completed,
                "failed": worker.failed,
            }
            for name, worker in self._workers.items()
        }
