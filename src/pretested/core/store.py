"""Persisted per-job records."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from pydantic import BaseModel, ValidationError

from pretested.core.errors import RepositoryError
from pretested.core.log import logger
from pretested.core.model import JobRecord, JobRuntime, StrategyKind


class JobStore:
    """Two JSON files per job under a state directory.

    ``{job}.json`` holds the JobRecord. It is read at the start of
    every cycle and written only after a successful finalize.
    ``{job}.runtime.json`` holds the JobRuntime, written whenever an
    attempt is rejected or a rejection is cleared.
    """

    def __init__(self, state_dir: Path):
        self.state_dir = Path(state_dir)

    def path_for(self, job_name: str) -> Path:
        return self.state_dir / f"{job_name}.json"

    def runtime_path_for(self, job_name: str) -> Path:
        return self.state_dir / f"{job_name}.runtime.json"

    def _read(self, path: Path, model: type[BaseModel]):
        try:
            return model.model_validate_json(path.read_text(encoding="utf-8"))
        except ValidationError as e:
            raise RepositoryError(
                f"Corrupt job record {path}", details={"error": str(e)}
            ) from e

    def _write(self, path: Path, data: BaseModel) -> None:
        """Write a model atomically (temp file, then rename)."""
        self.state_dir.mkdir(parents=True, exist_ok=True)

        fd, tmp = tempfile.mkstemp(
            dir=self.state_dir, prefix=f".{path.stem}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data.model_dump_json(indent=2))
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def load(
        self,
        job_name: str,
        target_branch: str,
        strategy: StrategyKind = StrategyKind.FAST_FORWARD,
    ) -> JobRecord:
        """Read the record for a job, or a fresh one with no marker.

        Raises:
            RepositoryError: If the record exists but cannot be parsed
        """
        path = self.path_for(job_name)
        if not path.is_file():
            logger.debug(
                "No job record yet for {job}", job=job_name, path=str(path)
            )
            return JobRecord(target_branch=target_branch, strategy=strategy)

        record = self._read(path, JobRecord)

        # The configured branch and strategy are authoritative
        return record.model_copy(
            update={"target_branch": target_branch, "strategy": strategy}
        )

    def save(self, job_name: str, record: JobRecord) -> None:
        self._write(self.path_for(job_name), record)
        logger.debug(
            "Saved job record {job}",
            job=job_name,
            last_integrated=record.last_integrated,
        )

    def load_runtime(self, job_name: str) -> JobRuntime:
        """Read a job's runtime record, empty if none was written.

        Raises:
            RepositoryError: If the file exists but cannot be parsed
        """
        path = self.runtime_path_for(job_name)
        if not path.is_file():
            return JobRuntime()
        return self._read(path, JobRuntime)

    def save_runtime(self, job_name: str, runtime: JobRuntime) -> None:
        self._write(self.runtime_path_for(job_name), runtime)
        logger.debug(
            "Saved runtime record {job}",
            job=job_name,
            rejected_head=runtime.rejected_head,
        )
