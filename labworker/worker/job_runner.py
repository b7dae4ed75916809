from labworker.logging.logger import Log
from labworker.processor.exceptions import JobAlreadyProcessingError, JobNotPendingError
from labworker.processor.orchestrator import Orchestrator


class JobRunner:
    """Run one upload and contain its failure so the worker keeps polling."""

    def __init__(self, orchestrator: Orchestrator) -> None:
        self._orchestrator = orchestrator

    def run(self, upload_id: int) -> bool:
        """Process a single upload. Returns True if it reached a terminal result."""
        Log.info(f"Running upload {upload_id}")
        try:
            result = self._orchestrator.process(upload_id)
        except (JobAlreadyProcessingError, JobNotPendingError) as exc:
            Log.warning(f"Upload {upload_id} skipped: {exc}")
            return False
        except Exception as exc:
            Log.error(f"Upload {upload_id} failed: {exc}")
            return False
        Log.info(f"Upload {upload_id} finished with status {result.status.value}")
        return True
