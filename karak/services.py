"""
Record service: the only entry point through which callers touch records.

Every operation resolves the entities it needs, asks the authorization context
for the matching decision and only then touches the store.
"""

import logging
from typing import Iterator, Optional

from karak.authorization import Context, DecisionPoint
from karak.database import Database
from karak.errors import (
    AccessDenied,
    InvalidCredentials,
    NoMedicalFolder,
    ReportNotFound,
    UserAlreadyExists,
)
from karak.models import (
    MedicalFolder,
    MedicalReport,
    PersonalData,
    ReportID,
    Role,
    UserData,
    UserID,
)
from karak.passwords import hash_password, verify_password

logger = logging.getLogger(__name__)


class Service:
    def __init__(self, db: Database, decision_point: DecisionPoint):
        self.db = db
        self.decision_point = decision_point
        self.user: Optional[UserID] = None

    def save(self) -> None:
        self.db.save()

    # ── Session ──────────────────────────────────────────────────────

    @property
    def current_user(self) -> Optional[UserID]:
        return self.user

    def register(self, username: str, password: str) -> UserID:
        """Create a Patient account without medical folder."""
        if self.db.lookup_username(username) is not None:
            raise UserAlreadyExists(username)

        new_user = UserData(
            id=UserID.new(),
            role=Role.PATIENT,
            username=username,
            password=hash_password(password),
        )
        self.db.store_user(new_user)
        logger.info("Account created for user %s", new_user.username)
        return new_user.id

    def login(self, username: str, password: str) -> UserID:
        user = self.db.lookup_username(username)
        stored_hash = user.password if user is not None else None
        if not verify_password(password, stored_hash):
            logger.info("Failed login attempt for %s", username)
            raise InvalidCredentials()

        self.user = user.id
        logger.info("User %s logged in", user.id)
        return user.id

    def logout(self) -> None:
        self.user = None

    def lookup_user(self, username: str) -> Optional[UserID]:
        user = self.db.lookup_username(username)
        return user.id if user is not None else None

    def _subject(self) -> Optional[UserData]:
        if self.user is None:
            return None
        return self.db.users.get(self.user)

    def _enforce(self) -> Context:
        """Authorization context for the logged-in user."""
        subject = self._subject()
        if subject is None:
            raise AccessDenied()
        return Context(self.decision_point, subject)

    # ── Personal data ────────────────────────────────────────────────

    def get_data(self, user_id: UserID) -> UserData:
        user = self.db.get_user(user_id)
        self._enforce().read_data(user)
        return user

    def update_data(self, user_id: UserID, personal_data: PersonalData) -> None:
        """Replace the personal data, creating the medical folder if needed."""
        user = self.db.get_user(user_id)
        self._enforce().update_data(user)

        if user.medical_folder is None:
            user.medical_folder = MedicalFolder(personal_data)
        else:
            user.medical_folder.personal_data = personal_data
        logger.info("Personal data of %s updated", user_id)

    def delete_data(self, user_id: UserID) -> None:
        """
        Wipe the patient's medical folder and every report about them. The
        folder goes first, then the reports. A doctor role is not affected.
        """
        user = self.db.get_user(user_id)
        self._enforce().delete_data(user)

        user.medical_folder = None
        self.db.remove_reports(user_id)
        logger.info("Medical data of %s deleted", user_id)

    def update_role(self, user_id: UserID, new_role: Role) -> None:
        user = self.db.get_user(user_id)
        self._enforce().update_role(user, new_role)

        user.role = new_role
        logger.info("Role of %s set to %s", user_id, new_role.value)

    # ── Doctors ──────────────────────────────────────────────────────

    def add_doctor(self, patient_id: UserID, doctor_id: UserID) -> None:
        patient = self.db.get_user(patient_id)
        doctor = self.db.get_user(doctor_id)
        self._enforce().add_doctor(patient, doctor)

        if patient.medical_folder is not None:
            patient.medical_folder.doctors.add(doctor_id)

    def remove_doctor(self, patient_id: UserID, doctor_id: UserID) -> None:
        patient = self.db.get_user(patient_id)
        doctor = self.db.get_user(doctor_id)
        self._enforce().remove_doctor(patient, doctor)

        if patient.medical_folder is not None:
            patient.medical_folder.doctors.discard(doctor_id)

    def list_patients(self) -> Iterator[UserData]:
        """Users whose folder names the logged-in user as treating doctor."""
        if self.user is None:
            return iter(())
        return (self.db.users[uid] for uid in self.db.get_patients(self.user))

    # ── Reports ──────────────────────────────────────────────────────

    def add_report(self, author: UserID, patient_id: UserID, title: str, content: str) -> ReportID:
        report = MedicalReport(
            id=ReportID.new(),
            title=title,
            author=author,
            patient=patient_id,
            content=content,
        )
        patient = self.db.get_user(patient_id)
        self._enforce().add_report(patient, report)

        if patient.medical_folder is None:
            raise NoMedicalFolder(patient_id)
        self.db.store_report(report)
        logger.info("Report %s added for %s", report.id, patient_id)
        return report.id

    def read_report(self, report_id: ReportID) -> MedicalReport:
        report = self._get_report(report_id)
        patient = self.db.get_user(report.patient)
        self._enforce().read_report(report, patient)
        return report

    def update_report(self, report_id: ReportID, content: str) -> None:
        report = self._get_report(report_id)
        self._enforce().update_report(report)

        self.db.set_report_content(report_id, content)
        logger.info("Report %s updated", report_id)

    def list_reports(self, user_id: UserID) -> Iterator[MedicalReport]:
        """The patient's reports the logged-in user may read, checked one by one."""
        try:
            ctx = self._enforce()
        except AccessDenied:
            return iter(())
        return (
            report
            for report in self.db.list_reports()
            if report.patient == user_id and self._may_read(ctx, report)
        )

    def _may_read(self, ctx: Context, report: MedicalReport) -> bool:
        patient = self.db.users.get(report.patient)
        if patient is None:
            return False
        try:
            ctx.read_report(report, patient)
        except AccessDenied:
            return False
        return True

    def _get_report(self, report_id: ReportID) -> MedicalReport:
        report = self.db.get_report(report_id)
        if report is None:
            raise ReportNotFound(report_id)
        return report
