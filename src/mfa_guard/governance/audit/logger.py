"""Audit Logger - Immutable logging of MFA events."""

import hashlib
import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional, Sequence

from mfa_guard.common.constants import AuditConstants
from mfa_guard.common.exceptions import AuditError
from mfa_guard.core.types import UserId
from mfa_guard.governance.schemas import AuditEntry, AuditEventType


class AuditLogIntegrityError(Exception):
    """Raised when audit log integrity check fails."""
    pass


def _today() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


class AuditLogger:
    """Records MFA events immutably in JSONL format."""

    DEFAULT_LOG_DIR = Path("./logs/audit")

    def __init__(
        self,
        log_dir: Optional[str] = None,
        log_filename_pattern: str = AuditConstants.LOG_FILENAME_PATTERN,
        enable_hash_chain: bool = True,
        hash_algorithm: str = AuditConstants.HASH_ALGORITHM,
    ):
        """Initialize audit logger.

        Args:
            log_dir: Directory for audit logs. Uses default if not provided.
            log_filename_pattern: Pattern for log filename. {date} is replaced.
            enable_hash_chain: Whether to enable hash chain integrity.
            hash_algorithm: Hash algorithm for integrity checks.
        """
        self.log_dir = Path(log_dir) if log_dir else self.DEFAULT_LOG_DIR
        self.log_filename_pattern = log_filename_pattern
        self.enable_hash_chain = enable_hash_chain
        self.hash_algorithm = hash_algorithm

        self._lock = threading.Lock()

        # Chain state belongs to one log file; it restarts when the date rolls
        self._last_hash: Optional[str] = None
        self._chain_path: Optional[Path] = None

        self.log_dir.mkdir(parents=True, exist_ok=True)

    def _get_log_path(self, date: Optional[str] = None) -> Path:
        filename = self.log_filename_pattern.replace("{date}", date or _today())
        return self.log_dir / filename

    def _get_last_hash_from_log(self, log_path: Path) -> Optional[str]:
        """Read the last hash from a log file."""
        if not log_path.exists():
            return None

        last_hash = None
        try:
            with open(log_path, "r") as f:
                for line in f:
                    line = line.strip()
                    if line:
                        entry = json.loads(line)
                        last_hash = entry.get("entry_hash")
        except (json.JSONDecodeError, IOError):
            return None

        return last_hash

    def _compute_hash(self, content: str) -> str:
        """Compute hash of content."""
        hasher = hashlib.new(self.hash_algorithm)
        hasher.update(content.encode("utf-8"))
        return hasher.hexdigest()

    def _create_hash_chain_entry(self, entry: AuditEntry) -> AuditEntry:
        """Add hash chain fields to entry."""
        if not self.enable_hash_chain:
            return entry

        entry_dict = entry.model_dump(mode="json")
        entry_dict["previous_hash"] = self._last_hash

        # Hash covers everything except the hash itself
        entry_dict["entry_hash"] = None
        content_to_hash = json.dumps(entry_dict, sort_keys=True, default=str)
        entry_dict["entry_hash"] = self._compute_hash(content_to_hash)

        return AuditEntry.model_validate(entry_dict)

    def log_user_passed_mfa(
        self,
        user_id: UserId,
        session_id: str,
        total_weight: int,
        factors: Sequence[str],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AuditEntry:
        """Log the session transition into PASS."""
        entry = AuditEntry(
            event_type=AuditEventType.USER_PASSED_MFA,
            session_id=session_id,
            user_id=str(user_id),
            total_weight=total_weight,
            factors=list(factors),
            metadata=metadata or {},
        )

        return self._append_entry(entry)

    def log_denial(
        self,
        user_id: UserId,
        session_id: str,
        failed_backends: Sequence[str] = (),
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AuditEntry:
        """Log a user being denied and logged out."""
        entry = AuditEntry(
            event_type=AuditEventType.DENIAL,
            session_id=session_id,
            user_id=str(user_id),
            metadata={
                "failed_backends": list(failed_backends),
                **(metadata or {}),
            },
        )

        return self._append_entry(entry)

    def log_system_event(
        self,
        event_description: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AuditEntry:
        """Log a system event (startup, shutdown, config change, etc.)"""
        entry = AuditEntry(
            event_type=AuditEventType.SYSTEM_EVENT,
            metadata={
                "event_description": event_description,
                **(metadata or {}),
            },
        )

        return self._append_entry(entry)

    def _append_entry(self, entry: AuditEntry) -> AuditEntry:
        """Append entry to log file (thread-safe).

        Raises:
            AuditError: If the entry cannot be written
        """
        with self._lock:
            log_path = self._get_log_path()

            if self.enable_hash_chain and log_path != self._chain_path:
                self._last_hash = self._get_last_hash_from_log(log_path)
                self._chain_path = log_path

            entry = self._create_hash_chain_entry(entry)

            # Append to file (never overwrite)
            try:
                with open(log_path, "a") as f:
                    f.write(entry.to_jsonl() + "\n")
            except OSError as e:
                raise AuditError(
                    f"Failed to write audit entry: {e}",
                    details={"entry_id": entry.entry_id, "path": str(log_path)},
                ) from e

            if self.enable_hash_chain:
                self._last_hash = entry.entry_hash

            return entry

    def get_entries(
        self,
        date: Optional[str] = None,
        event_type: Optional[AuditEventType] = None,
        session_id: Optional[str] = None,
        user_id: Optional[UserId] = None,
    ) -> Generator[AuditEntry, None, None]:
        """Retrieve audit entries with optional filtering."""
        log_path = self._get_log_path(date)

        if not log_path.exists():
            return

        with open(log_path, "r") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue

                try:
                    entry = AuditEntry.from_jsonl(line)
                except ValueError:
                    # Skip malformed entries
                    continue

                if event_type and entry.event_type != event_type:
                    continue
                if session_id and entry.session_id != session_id:
                    continue
                if user_id is not None and entry.user_id != str(user_id):
                    continue

                yield entry

    def verify_integrity(self, date: Optional[str] = None) -> bool:
        """Verify hash chain integrity of a log file.

        Raises:
            AuditLogIntegrityError: On the first broken link or altered entry
        """
        if not self.enable_hash_chain:
            return True

        log_path = self._get_log_path(date)

        if not log_path.exists():
            return True  # Empty log is valid

        previous_hash = None
        line_number = 0

        with open(log_path, "r") as f:
            for line in f:
                line_number += 1
                line = line.strip()
                if not line:
                    continue

                try:
                    entry_dict = json.loads(line)
                except json.JSONDecodeError as e:
                    raise AuditLogIntegrityError(
                        f"Malformed JSON at line {line_number}: {e}"
                    )

                if entry_dict.get("previous_hash") != previous_hash:
                    raise AuditLogIntegrityError(
                        f"Hash chain broken at line {line_number}. "
                        f"Expected previous_hash={previous_hash}, "
                        f"got {entry_dict.get('previous_hash')}"
                    )

                stored_hash = entry_dict.get("entry_hash")
                entry_dict["entry_hash"] = None
                content_to_hash = json.dumps(entry_dict, sort_keys=True, default=str)

                if self._compute_hash(content_to_hash) != stored_hash:
                    raise AuditLogIntegrityError(
                        f"Entry hash mismatch at line {line_number}. "
                        f"Entry may have been tampered with."
                    )

                previous_hash = stored_hash

        return True

    def get_log_files(self) -> List[Path]:
        """Get list of all audit log files."""
        return sorted(self.log_dir.glob("*.jsonl"))

    def get_entry_count(self, date: Optional[str] = None) -> int:
        """Get count of entries in log file."""
        log_path = self._get_log_path(date)

        if not log_path.exists():
            return 0

        with open(log_path, "r") as f:
            return sum(1 for line in f if line.strip())
