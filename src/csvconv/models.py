"""Pydantic models for worker signals and run summaries"""

from enum import Enum

from pydantic import BaseModel, Field, computed_field


class SignalKind(str, Enum):
    """Kinds of progress signals a worker sends to the coordinator"""

    COUNT = 'count'
    ERROR = 'error'
    COMPLETED = 'completed'


class ProgressSignal(BaseModel):
    """A message from a worker process to the coordinator

    Attributes:
        kind: count (one file converted), error (one file failed) or completed (chunk done)
        worker_id: Index of the sending worker
        file: File name the signal refers to (count and error signals)
        value: Number of records converted (count signals)
        error: Failure reason (error signals)
    """

    kind: SignalKind = Field(..., examples=['count'], description='Signal kind')
    worker_id: int = Field(..., examples=[0], description='Index of the sending worker')
    file: str | None = Field(None, examples=['orders.csv'], description='File the signal refers to')
    value: int | None = Field(None, examples=[1200], description='Records converted for the file')
    error: str | None = Field(None, examples=['line 3: expected 2 fields, saw 3'], description='Failure reason')

    @classmethod
    def count(cls, worker_id: int, file: str, value: int) -> 'ProgressSignal':
        return cls(kind=SignalKind.COUNT, worker_id=worker_id, file=file, value=value)

    @classmethod
    def failed(cls, worker_id: int, file: str, error: str) -> 'ProgressSignal':
        return cls(kind=SignalKind.ERROR, worker_id=worker_id, file=file, error=error)

    @classmethod
    def completed(cls, worker_id: int) -> 'ProgressSignal':
        return cls(kind=SignalKind.COMPLETED, worker_id=worker_id)


class WorkerReport(BaseModel):
    """Coordinator-side state of one worker process"""

    worker_id: int = Field(..., description='Index of the worker (position of its chunk)')
    pid: int | None = Field(None, description='OS process id')
    files: list[str] = Field(default_factory=list, description='Chunk assigned to the worker')
    records: int = Field(0, description='Records converted by this worker')
    converted: list[str] = Field(default_factory=list, description='Files converted successfully')
    failed: dict[str, str] = Field(default_factory=dict, description='Files that failed to parse, with reason')
    completed: bool = Field(False, description='Whether a completion signal was received')
    exit_code: int | None = Field(None, description='Process exit code (negative: killed by signal)')
    stalled: bool = Field(False, description='Whether the coordinator stopped the worker for inactivity')

    @computed_field
    @property
    def crashed(self) -> bool:
        return not self.completed or self.exit_code != 0

    @computed_field
    @property
    def unconverted(self) -> list[str]:
        """Chunk files the worker never reported on"""
        seen = set(self.converted) | set(self.failed)
        return [f for f in self.files if f not in seen]


class RunSummary(BaseModel):
    """Aggregate result of one conversion run"""

    input_dir: str = Field(..., examples=['/data/exports'], description='Directory that was converted')
    output_dir: str = Field(..., examples=['/opt/csvconv/converted'], description='Directory JSON files went to')
    worker_count: int = Field(..., examples=[8], description='Configured worker count')
    files_found: int = Field(0, description='Number of CSV files in the input directory')
    total_records: int = Field(0, description='Records converted across all files')
    start_time: float = Field(0.0, description='Unix timestamp taken before workers were spawned')
    duration_ms: int = Field(0, description='Wall-clock duration of the run in milliseconds')
    rejected: dict[str, str] = Field(
        default_factory=dict, description='Files not converted because an earlier file owns their JSON name'
    )
    workers: list[WorkerReport] = Field(default_factory=list, description='Per-worker outcomes')

    @computed_field
    @property
    def workers_spawned(self) -> int:
        return len(self.workers)

    @computed_field
    @property
    def files_converted(self) -> int:
        return sum(len(w.converted) for w in self.workers)

    @computed_field
    @property
    def files_failed(self) -> dict[str, str]:
        failed: dict[str, str] = dict(self.rejected)
        for w in self.workers:
            failed.update(w.failed)
        return failed

    @computed_field
    @property
    def crashed_workers(self) -> list[int]:
        return [w.worker_id for w in self.workers if w.crashed]

    @computed_field
    @property
    def unconverted_files(self) -> list[str]:
        return [f for w in self.workers for f in w.unconverted]

    @computed_field
    @property
    def clean(self) -> bool:
        """True when every worker finished its chunk and exited normally"""
        return not self.crashed_workers
