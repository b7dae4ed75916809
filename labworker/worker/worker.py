import time

from labworker.config.settings import Settings
from labworker.database.connection import get_connection
from labworker.database.repositories.lab_upload_repository import LabUploadRepository
from labworker.logging.logger import Log
from labworker.worker.job_runner import JobRunner


class Worker:
    """Poll loop: find pending upload -> dispatch -> sleep when idle."""

    def __init__(
        self,
        upload_repo: LabUploadRepository,
        job_runner: JobRunner,
        settings: Settings,
    ) -> None:
        self._upload_repo = upload_repo
        self._job_runner = job_runner
        self._settings = settings

    def run(self, max_jobs: int | None = None) -> None:
        """Main poll loop. Runs forever until interrupted.

        If max_jobs is set, stop after dispatching that many uploads (for testing).
        """
        Log.info("Worker started, polling for uploads")
        jobs_done = 0
        try:
            while True:
                if max_jobs is not None and jobs_done >= max_jobs:
                    break
                upload_id = self._find_next_upload()
                if upload_id is not None:
                    self._job_runner.run(upload_id)
                    jobs_done += 1
                else:
                    Log.debug("No pending uploads, sleeping")
                    time.sleep(self._settings.job_poll_interval_seconds)
        except KeyboardInterrupt:
            Log.info("Worker shutting down gracefully")

    def _find_next_upload(self) -> int | None:
        """Look up the next pending upload. Gracefully handle DB errors."""
        try:
            with get_connection() as conn:
                return self._upload_repo.find_next_pending_id(conn)
        except Exception as exc:
            Log.warning(f"Database error, will retry: {exc}")
            return None
