"""
In-memory entity store with whole-file JSON snapshots.

The store knows nothing about identities or permissions; every caller goes
through karak.services.Service.
"""

import json
import logging
import os
from pathlib import Path
from typing import Dict, Iterator, Optional, Union

from karak.errors import SnapshotError, UserNotFound
from karak.models import MedicalReport, ReportID, UserData, UserID

logger = logging.getLogger(__name__)


class Database:
    def __init__(self, path: Optional[Path] = None):
        self.path = path
        self.users: Dict[UserID, UserData] = {}
        self.reports: Dict[ReportID, MedicalReport] = {}

    # ── Snapshot ─────────────────────────────────────────────────────

    @classmethod
    def open(cls, path: Union[str, Path]) -> "Database":
        """
        Load the snapshot at *path*. A missing file yields an empty store which
        is saved right away; any other I/O error propagates.
        """
        path = Path(path)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            logger.info("DB file %s not found, creating new empty DB", path)
            db = cls(path)
            db.save()
            return db

        db = cls.from_dict(_decode(raw, path))
        db.path = path
        logger.info("Loaded %d users and %d reports from %s", len(db.users), len(db.reports), path)
        return db

    def save(self) -> None:
        """Write the whole store to its backing file; no-op for an ephemeral store."""
        if self.path is None:
            return
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            with tmp.open("w", encoding="utf-8") as f:
                json.dump(self.to_dict(), f, indent=2)
            os.replace(tmp, self.path)
        except Exception:
            tmp.unlink(missing_ok=True)
            raise
        logger.info("Saved snapshot to %s", self.path)

    def to_dict(self) -> dict:
        return {
            "users": {str(uid): u.to_dict() for uid, u in self.users.items()},
            "reports": {str(rid): r.to_dict() for rid, r in self.reports.items()},
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Database":
        db = cls()
        try:
            for raw in data.get("users", {}).values():
                user = UserData.from_dict(raw)
                db.users[user.id] = user
            for raw in data.get("reports", {}).values():
                report = MedicalReport.from_dict(raw)
                db.reports[report.id] = report
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise SnapshotError(f"Malformed snapshot entry: {e}") from e
        return db

    # ── Users ────────────────────────────────────────────────────────

    def get_user(self, user: UserID) -> UserData:
        try:
            return self.users[user]
        except KeyError:
            raise UserNotFound(user) from None

    def lookup_username(self, name: str) -> Optional[UserData]:
        return next((u for u in self.users.values() if u.username == name), None)

    def store_user(self, data: UserData) -> None:
        self.users[data.id] = data

    def get_patients(self, doctor: UserID) -> Iterator[UserID]:
        return (u.id for u in self.users.values() if u.has_doctor(doctor))

    # ── Reports ──────────────────────────────────────────────────────

    def get_report(self, report: ReportID) -> Optional[MedicalReport]:
        return self.reports.get(report)

    def set_report_content(self, report: ReportID, content: str) -> bool:
        stored = self.reports.get(report)
        if stored is None:
            return False
        stored.content = content
        return True

    def store_report(self, report: MedicalReport) -> None:
        self.reports[report.id] = report

    def list_reports(self) -> Iterator[MedicalReport]:
        return iter(self.reports.values())

    def remove_reports(self, patient: UserID) -> None:
        self.reports = {rid: r for rid, r in self.reports.items() if r.patient != patient}


def _decode(raw: bytes, path: Path) -> dict:
    try:
        data = json.loads(raw.decode("utf-8"))
    except UnicodeDecodeError as e:
        raise SnapshotError(f"{path} is not UTF-8 text: {e}") from e
    except json.JSONDecodeError as e:
        raise SnapshotError(f"{path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise SnapshotError(f"{path} does not hold a KARAK snapshot")
    return data
