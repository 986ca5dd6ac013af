"""
Append-only submission store.
"""

from typing import Dict, Iterator, List, Optional, Protocol

from shared.logging import get_logger

from .models import Submission


class SubmissionStore(Protocol):
    """Append-only log of evaluated submissions."""

    def append(self, submission: Submission) -> None: ...

    def get_by_id(self, submission_id: str) -> Optional[Submission]: ...

    def history(self, submission_id: str) -> List[Submission]: ...

    def scan(self) -> Iterator[Submission]: ...


class InMemorySubmissionStore:
    """Submission log kept in memory.

    Re-evaluating an id appends a new record; ``get_by_id`` returns the
    most recent one.
    """

    def __init__(self):
        self.logger = get_logger("appetite.submission_store")
        self._log: List[Submission] = []
        self._by_id: Dict[str, List[Submission]] = {}

    def append(self, submission: Submission) -> None:
        self._log.append(submission)
        self._by_id.setdefault(submission.submission_id, []).append(submission)
        self.logger.info(
            "Submission recorded",
            submission_id=submission.submission_id,
            decision=submission.decision.value,
            revision=len(self._by_id[submission.submission_id])
        )

    def get_by_id(self, submission_id: str) -> Optional[Submission]:
        records = self._by_id.get(submission_id)
        return records[-1] if records else None

    def history(self, submission_id: str) -> List[Submission]:
        return list(self._by_id.get(submission_id, []))

    def scan(self) -> Iterator[Submission]:
        return iter(list(self._log))

    def __len__(self) -> int:
        return len(self._log)

    def clear(self):
        self._log.clear()
        self._by_id.clear()
