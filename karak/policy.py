"""
Default rule set for the decision point.

Each action maps to a list of rules; access is granted when any rule matches.
Asking about an action with no rules raises, which the authorization
context reports as a plain denial.
"""

from typing import Any, Callable, Dict, List

from karak.authorization import Action
from karak.models import Role, UserData

Rule = Callable[[UserData, Any], bool]

CARE_ROLES = {Role.DOCTOR, Role.ADMIN}


# ── Rules ────────────────────────────────────────────────────────────

def is_admin(sub: UserData, obj: Any) -> bool:
    return sub.role == Role.ADMIN


def is_self(sub: UserData, obj: UserData) -> bool:
    return sub.id == obj.id


def treats_target(sub: UserData, obj: UserData) -> bool:
    return sub.role == Role.DOCTOR and obj.has_doctor(sub.id)


def writes_own_report(sub: UserData, obj) -> bool:
    report, patient = obj.report, obj.patient
    return (
        sub.role in CARE_ROLES
        and report.author == sub.id
        and report.patient == patient.id
        and patient.medical_folder is not None
    )


def authored_report(sub: UserData, obj) -> bool:
    return obj.report.author == sub.id


def treats_report_patient(sub: UserData, obj) -> bool:
    return sub.role == Role.DOCTOR and obj.patient.has_doctor(sub.id)


def authored(sub: UserData, obj) -> bool:
    return obj.author == sub.id


def admin_with_folder(sub: UserData, obj) -> bool:
    return sub.role == Role.ADMIN and obj.patient.medical_folder is not None


def manages_own_doctors(sub: UserData, obj) -> bool:
    return (sub.id == obj.patient.id or sub.role == Role.ADMIN) and obj.doctor.role in CARE_ROLES


DEFAULT_RULES: Dict[Action, List[Rule]] = {
    Action.READ_DATA: [is_self, is_admin, treats_target],
    Action.UPDATE_DATA: [is_self, is_admin],
    Action.DELETE_DATA: [is_self, is_admin],
    Action.ADD_REPORT: [writes_own_report, admin_with_folder],
    Action.READ_REPORT: [authored_report, treats_report_patient, is_admin],
    Action.UPDATE_REPORT: [authored, is_admin],
    Action.UPDATE_ROLE: [is_admin],
    Action.ADD_DOCTOR: [manages_own_doctors],
    Action.REMOVE_DOCTOR: [manages_own_doctors],
}


class RulePolicy:
    """Decision point evaluating a table of Python predicates."""

    def __init__(self, rules: Dict[Action, List[Rule]] = None):
        self.rules = dict(DEFAULT_RULES if rules is None else rules)

    def decide(self, subject: UserData, obj: Any, action: Action) -> bool:
        rules = self.rules[Action(action)]
        return any(rule(subject, obj) for rule in rules)
