"""Session-scoped, in-memory store of batch job snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..domain.models import BatchJob, BatchStatus

FINISHED_STATUSES = frozenset({BatchStatus.COMPLETED, BatchStatus.PARTIAL, BatchStatus.FAILED})


@dataclass(slots=True)
class BatchStore:
    """Keeps the latest snapshot of every batch started in this process.

    Nothing is persisted; a restart forgets every batch. Once more than
    ``max_batches`` are held, the oldest finished batches are dropped.
    Batches still running are never evicted.
    """

    max_batches: int = 500
    _jobs: dict[str, BatchJob] = field(default_factory=dict)

    def save(self, job: BatchJob) -> None:
        self._jobs[job.id] = job
        if len(self._jobs) > self.max_batches:
            self._evict_finished()

    def get(self, batch_id: str) -> BatchJob | None:
        return self._jobs.get(batch_id)

    def list_ids(self) -> list[str]:
        return list(self._jobs)

    def _evict_finished(self) -> None:
        excess = len(self._jobs) - self.max_batches
        stale = [batch_id for batch_id, job in self._jobs.items() if job.status in FINISHED_STATUSES]
        for batch_id in stale[:excess]:
            del self._jobs[batch_id]
