"""
Durable one-attempt-per-candidate tracking.

Records live in a JSON side table independent of session state, so a
restart cannot reopen an attempt that was already used.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional

from .errors import AlreadyAttempted
from .models import AttemptRecord, now_iso, age_hours
from .schemas import AttemptStatus
from ..infrastructure.data import JsonDocumentStore

logger = logging.getLogger("registry")

STATUS_MESSAGES = {
    AttemptStatus.NOT_STARTED: "You have not started this interview yet.",
    AttemptStatus.STARTED: "Your interview is in progress. Please complete it in the interview room.",
    AttemptStatus.IN_PROGRESS: "Your interview session is active. You cannot start a new one.",
    AttemptStatus.COMPLETED: "You have already completed this interview. Thank you for your participation.",
    AttemptStatus.ABANDONED: "Your interview session expired before it was completed. Please contact the recruiting team.",
}


def candidate_key(email: str, role: str) -> str:
    return f"{email.strip().lower()}_{role.strip().lower()}"


@dataclass
class StartCheck:
    """Answer to can_start."""
    allowed: bool
    reason: str
    status: AttemptStatus = AttemptStatus.NOT_STARTED


def _empty_document() -> Dict[str, Any]:
    return {"candidates": {}, "sessions": {}}


class AttemptRegistry:
    """Gatekeeper for the one-attempt-per-(email, role) rule."""

    def __init__(self, path: str):
        self.store = JsonDocumentStore(path, default=_empty_document)

    def get(self, email: str, role: str) -> Optional[AttemptRecord]:
        data = self.store.read()
        record = data["candidates"].get(candidate_key(email, role))
        return AttemptRecord.from_dict(record) if record else None

    def get_by_session(self, session_id: str) -> Optional[AttemptRecord]:
        data = self.store.read()
        key = data["sessions"].get(session_id, {}).get("candidate_key")
        record = data["candidates"].get(key) if key else None
        return AttemptRecord.from_dict(record) if record else None

    def can_start(self, email: str, role: str) -> StartCheck:
        record = self.get(email, role)
        if record is None:
            return StartCheck(True, "No previous attempt")
        return StartCheck(False, STATUS_MESSAGES[record.status], record.status)

    def register_start(self, email: str, role: str, session_id: str, candidate_name: str = "") -> AttemptRecord:
        """
        Record a new attempt.

        Raises:
            AlreadyAttempted: If any record exists for this key, whatever its status
        """
        key = candidate_key(email, role)

        def mutate(data):
            existing = data["candidates"].get(key)
            if existing is not None:
                status = AttemptStatus(existing["status"])
                raise AlreadyAttempted(email, role, status.value, STATUS_MESSAGES[status])
            record = AttemptRecord(
                email=email.strip().lower(),
                role=role,
                status=AttemptStatus.STARTED,
                session_id=session_id,
                candidate_name=candidate_name,
                started_at=now_iso(),
            )
            data["candidates"][key] = record.to_dict()
            data["sessions"][session_id] = {"candidate_key": key, "created_at": record.started_at}
            return record

        record = self.store.update(mutate)
        logger.info(f"Registered attempt {key} -> session {session_id}")
        return record

    def _advance(self, session_id: str, status: AttemptStatus, **fields) -> Optional[AttemptRecord]:
        """Move a record forward. Regressions are ignored; a late completion may still overwrite abandoned."""

        def mutate(data):
            key = data["sessions"].get(session_id, {}).get("candidate_key")
            if key is None or key not in data["candidates"]:
                return None
            record = AttemptRecord.from_dict(data["candidates"][key])
            if status.rank <= record.status.rank:
                logger.debug(f"Ignoring {record.status.value} -> {status.value} for {key}")
                return record
            record.status = status
            for name, value in fields.items():
                setattr(record, name, value)
            data["candidates"][key] = record.to_dict()
            return record

        record = self.store.update(mutate)
        if record is None:
            logger.warning(f"No attempt record for session {session_id}")
        return record

    def mark_in_progress(self, session_id: str) -> Optional[AttemptRecord]:
        return self._advance(session_id, AttemptStatus.IN_PROGRESS)

    def mark_completed(self, session_id: str, score: Optional[float] = None) -> Optional[AttemptRecord]:
        record = self._advance(session_id, AttemptStatus.COMPLETED, completed_at=now_iso(), score=score)
        if record is not None:
            logger.info(f"Attempt for session {session_id} is {record.status.value}")
        return record

    def mark_abandoned(self, session_id: str) -> Optional[AttemptRecord]:
        return self._advance(session_id, AttemptStatus.ABANDONED, completed_at=now_iso())

    def reap_abandoned(self, max_age_hours: float) -> List[AttemptRecord]:
        """
        Sweep started and in-progress records older than max_age_hours to abandoned.

        Abandoned records still block new attempts.
        """
        now = datetime.now(timezone.utc)

        def mutate(data):
            swept = []
            for key, raw in data["candidates"].items():
                record = AttemptRecord.from_dict(raw)
                if record.status not in (AttemptStatus.STARTED, AttemptStatus.IN_PROGRESS):
                    continue
                if age_hours(record.started_at, now) < max_age_hours:
                    continue
                record.status = AttemptStatus.ABANDONED
                record.completed_at = now.isoformat()
                data["candidates"][key] = record.to_dict()
                swept.append(record)
            return swept

        swept = self.store.update(mutate)
        if swept:
            logger.info(f"Marked {len(swept)} attempt(s) abandoned")
        return swept

    def status_report(self, email: str, role: str) -> Dict[str, Any]:
        """Status plus a message suitable for showing to the candidate."""
        record = self.get(email, role)
        if record is None:
            return {"status": AttemptStatus.NOT_STARTED.value,
                    "message": STATUS_MESSAGES[AttemptStatus.NOT_STARTED]}
        report = record.to_dict()
        report["message"] = STATUS_MESSAGES[record.status]
        return report
