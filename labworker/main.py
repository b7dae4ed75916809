import argparse

from labworker.config.settings import Settings
from labworker.database.connection import close_pool, init_pool
from labworker.database.repositories.lab_upload_repository import LabUploadRepository
from labworker.logging.logger import Log
from labworker.processor.orchestrator import build_orchestrator
from labworker.worker.job_runner import JobRunner
from labworker.worker.worker import Worker


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="labworker",
        description="Extract, verify and standardize biomarkers from uploaded lab reports.",
    )
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "--upload-id",
        type=int,
        help="Process a single pending upload and exit",
    )
    group.add_argument(
        "--reset",
        type=int,
        metavar="UPLOAD_ID",
        help="Return a terminal upload to pending and exit",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point: initialize pool -> build dependencies -> run the requested command."""
    args = build_parser().parse_args(argv)
    settings = Settings()
    Log.configure(settings.log_level)
    init_pool(settings)

    try:
        orchestrator = build_orchestrator(settings)
        if args.reset is not None:
            orchestrator.reset(args.reset)
            return 0
        job_runner = JobRunner(orchestrator)
        if args.upload_id is not None:
            return 0 if job_runner.run(args.upload_id) else 1
        worker = Worker(LabUploadRepository(), job_runner, settings)
        worker.run()
        return 0
    finally:
        close_pool()


if __name__ == "__main__":
    raise SystemExit(main())
