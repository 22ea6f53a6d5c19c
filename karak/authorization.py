"""
Authorization context: turns a pending operation into a policy query.

Each protected action builds the exact object its rule expects and hands
(subject, object, action) to an external decision point.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from karak.errors import AccessDenied
from karak.models import MedicalReport, Role, UserData

logger = logging.getLogger(__name__)


class Action(str, Enum):
    READ_DATA = "read-data"
    UPDATE_DATA = "update-data"
    DELETE_DATA = "delete-data"
    ADD_REPORT = "add-report"
    READ_REPORT = "read-report"
    UPDATE_REPORT = "update-report"
    UPDATE_ROLE = "update-role"
    ADD_DOCTOR = "add-doctor"
    REMOVE_DOCTOR = "remove-doctor"

    def __str__(self) -> str:
        return self.value


class DecisionPoint(Protocol):
    """Anything able to answer allow (True) / deny (False); it may also raise."""

    def decide(self, subject: UserData, obj: Any, action: Action) -> bool:
        ...


# ── Composite objects ────────────────────────────────────────────────

@dataclass(frozen=True)
class ReportCreation:
    patient: UserData
    report: MedicalReport


@dataclass(frozen=True)
class ReportAccess:
    report: MedicalReport
    patient: UserData


@dataclass(frozen=True)
class RoleChange:
    target: UserData
    role: Role


@dataclass(frozen=True)
class DoctorAssignment:
    patient: UserData
    doctor: UserData


def _describe(obj: Any) -> str:
    if isinstance(obj, UserData):
        return f"user {obj.id}"
    if isinstance(obj, MedicalReport):
        return f"report {obj.id}"
    return type(obj).__name__


class Context:
    """Binds one authenticated subject to a decision point for a single request."""

    def __init__(self, decision_point: DecisionPoint, subject: UserData):
        self.decision_point = decision_point
        self.subject = subject

    def enforce(self, obj: Any, action: Action) -> None:
        """Raise AccessDenied unless the decision point explicitly allows."""
        subject = self.subject
        logger.info("Enforcing %s by %s on %s", action.value, subject.id, _describe(obj))
        try:
            granted = self.decision_point.decide(subject, obj, action)
        except Exception:
            logger.exception("Decision point failed on %s", action.value)
            raise AccessDenied() from None

        allowed = granted is True
        logger.info("Granted: %s", allowed)
        if not allowed:
            raise AccessDenied()

    def read_data(self, target: UserData) -> None:
        self.enforce(target, Action.READ_DATA)

    def update_data(self, target: UserData) -> None:
        self.enforce(target, Action.UPDATE_DATA)

    def delete_data(self, target: UserData) -> None:
        self.enforce(target, Action.DELETE_DATA)

    def add_report(self, patient: UserData, report: MedicalReport) -> None:
        self.enforce(ReportCreation(patient=patient, report=report), Action.ADD_REPORT)

    def read_report(self, report: MedicalReport, patient: UserData) -> None:
        self.enforce(ReportAccess(report=report, patient=patient), Action.READ_REPORT)

    def update_report(self, report: MedicalReport) -> None:
        self.enforce(report, Action.UPDATE_REPORT)

    def update_role(self, target: UserData, role: Role) -> None:
        self.enforce(RoleChange(target=target, role=role), Action.UPDATE_ROLE)

    def add_doctor(self, patient: UserData, doctor: UserData) -> None:
        self.enforce(DoctorAssignment(patient=patient, doctor=doctor), Action.ADD_DOCTOR)

    def remove_doctor(self, patient: UserData, doctor: UserData) -> None:
        self.enforce(DoctorAssignment(patient=patient, doctor=doctor), Action.REMOVE_DOCTOR)
