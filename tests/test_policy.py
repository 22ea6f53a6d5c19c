"""
Unit tests for the default rule set, queried through the authorization context.
"""

import pytest

from karak.authorization import Action, Context
from karak.errors import AccessDenied
from karak.models import (
    BloodType,
    MedicalFolder,
    MedicalReport,
    PersonalData,
    ReportID,
    Role,
    UserData,
    UserID,
)
from karak.policy import RulePolicy


# ── Helpers ──────────────────────────────────────────────────────────

def make_user(username, role=Role.PATIENT):
    return UserData(id=UserID.new(), role=role, username=username, password="x")


def make_patient(username, doctor):
    user = make_user(username)
    user.medical_folder = MedicalFolder(
        PersonalData(avs_number="756.1234.5678.97", blood_type=BloodType.A),
        doctors={doctor.id},
    )
    return user


def make_report(author, patient):
    return MedicalReport(
        id=ReportID.new(), title="Test Report", author=author.id, patient=patient.id,
        content="Test content",
    )


def allowed(call, *args):
    try:
        call(*args)
    except AccessDenied:
        return False
    return True


@pytest.fixture
def world():
    policy = RulePolicy()
    doctor = make_user("doctor", Role.DOCTOR)
    return {
        "policy": policy,
        "admin": make_user("admin", Role.ADMIN),
        "doctor": doctor,
        "other_doctor": make_user("newDoc", Role.DOCTOR),
        "patient": make_patient("patient", doctor),
    }


# ── Tests ────────────────────────────────────────────────────────────

def test_admin_permissions(world):
    patient, doctor = world["patient"], world["doctor"]
    report = make_report(doctor, patient)
    ctx = Context(world["policy"], world["admin"])

    assert allowed(ctx.read_data, patient)
    assert allowed(ctx.update_data, patient)
    assert allowed(ctx.delete_data, patient)
    assert allowed(ctx.add_doctor, patient, world["other_doctor"])
    assert allowed(ctx.remove_doctor, patient, world["other_doctor"])
    assert allowed(ctx.add_report, patient, report)
    assert allowed(ctx.update_report, report)
    assert allowed(ctx.read_report, report, patient)
    assert allowed(ctx.update_role, patient, Role.DOCTOR)


def test_user_self_management(world):
    patient, doctor = world["patient"], world["doctor"]
    ctx = Context(world["policy"], patient)

    assert allowed(ctx.read_data, patient)
    assert allowed(ctx.update_data, patient)
    assert allowed(ctx.delete_data, patient)
    assert allowed(ctx.add_doctor, patient, doctor)
    assert allowed(ctx.remove_doctor, patient, doctor)


def test_patient_without_permission(world):
    patient, doctor = world["patient"], world["doctor"]
    report = make_report(doctor, patient)
    ctx = Context(world["policy"], patient)

    assert not allowed(ctx.add_report, patient, report)
    assert not allowed(ctx.update_report, report)
    assert not allowed(ctx.read_report, report, patient)
    assert not allowed(ctx.update_role, patient, Role.DOCTOR)
    assert not allowed(ctx.add_doctor, patient, make_user("eve"))


def test_patient_cannot_touch_someone_else(world):
    patient = world["patient"]
    stranger = make_user("stranger")
    ctx = Context(world["policy"], stranger)

    assert not allowed(ctx.read_data, patient)
    assert not allowed(ctx.update_data, patient)
    assert not allowed(ctx.delete_data, patient)
    assert not allowed(ctx.add_doctor, patient, world["doctor"])


def test_doctor_permissions(world):
    patient, doctor, new_doctor = world["patient"], world["doctor"], world["other_doctor"]
    policy = world["policy"]

    assert allowed(Context(policy, doctor).read_data, patient)
    assert not allowed(Context(policy, new_doctor).read_data, patient)
    assert not allowed(Context(policy, doctor).update_data, patient)

    report = make_report(new_doctor, patient)
    ctx_new = Context(policy, new_doctor)
    assert allowed(ctx_new.add_report, patient, report)
    assert allowed(ctx_new.update_report, report)
    assert allowed(ctx_new.read_report, report, patient)

    # treating doctor reads a colleague's report, but cannot edit it
    assert allowed(Context(policy, doctor).read_report, report, patient)
    assert not allowed(Context(policy, doctor).update_report, report)


def test_add_report_requires_folder_and_matching_fields(world):
    patient, doctor = world["patient"], world["doctor"]
    ctx = Context(world["policy"], doctor)

    no_folder = make_user("nofolder")
    assert not allowed(ctx.add_report, no_folder, make_report(doctor, no_folder))
    assert not allowed(Context(world["policy"], world["admin"]).add_report,
                       no_folder, make_report(doctor, no_folder))

    # author must be the subject
    assert not allowed(ctx.add_report, patient, make_report(world["other_doctor"], patient))
    # report must be about the given patient
    other = make_patient("other", doctor)
    assert not allowed(ctx.add_report, patient, make_report(doctor, other))


def test_unknown_action_is_denied(world):
    policy = RulePolicy(rules={Action.READ_DATA: []})
    ctx = Context(policy, world["admin"])
    assert not allowed(ctx.read_data, world["patient"])
    assert not allowed(ctx.update_data, world["patient"])


def test_decide_directly(world):
    policy = world["policy"]
    assert policy.decide(world["admin"], world["patient"], Action.READ_DATA) is True
    assert policy.decide(world["other_doctor"], world["patient"], "read-data") is False
    with pytest.raises(ValueError):
        policy.decide(world["admin"], world["patient"], "format-disk")
