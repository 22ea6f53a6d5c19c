"""
Unit tests for the entity store and its JSON snapshots.
"""

import json

import pytest

from karak.database import Database
from karak.errors import SnapshotError, UserNotFound
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


# ── Helpers ──────────────────────────────────────────────────────────

def make_user(username, role=Role.PATIENT, doctors=None):
    user = UserData(id=UserID.new(), role=role, username=username, password="$argon2id$fake")
    if doctors is not None:
        user.medical_folder = MedicalFolder(
            PersonalData("756.1234.5678.97", BloodType.B), doctors=set(doctors),
        )
    return user


def make_report(author, patient, title="Report"):
    return MedicalReport(
        id=ReportID.new(), title=title, author=author.id, patient=patient.id, content="...",
    )


# ── Tests: open / save ───────────────────────────────────────────────

def test_open_missing_file_creates_empty_snapshot(tmp_path):
    path = tmp_path / "database.json"
    db = Database.open(path)
    assert db.users == {} and db.reports == {}
    assert path.exists()
    assert json.loads(path.read_text()) == {"users": {}, "reports": {}}


def test_save_and_reopen(tmp_path):
    path = tmp_path / "database.json"
    db = Database.open(path)
    doctor = make_user("doctor", Role.DOCTOR)
    patient = make_user("patient", doctors=[doctor.id])
    report = make_report(doctor, patient)
    db.store_user(doctor)
    db.store_user(patient)
    db.store_report(report)
    db.save()

    reopened = Database.open(path)
    assert reopened.get_user(patient.id) == patient
    assert reopened.get_user(doctor.id).role == Role.DOCTOR
    assert reopened.get_report(report.id) == report
    assert reopened.path == path


def test_open_malformed_file_raises(tmp_path):
    path = tmp_path / "database.json"
    path.write_text("{not json")
    with pytest.raises(SnapshotError):
        Database.open(path)


def test_open_non_utf8_file_raises(tmp_path):
    path = tmp_path / "database.json"
    path.write_bytes(b'{"users": {"\xff": 1}}')
    with pytest.raises(SnapshotError):
        Database.open(path)


def test_failed_save_leaves_no_temp_file(tmp_path, monkeypatch):
    path = tmp_path / "database.json"
    db = Database.open(path)
    before = path.read_text()
    db.store_user(make_user("alice"))

    def broken_dump(*args, **kwargs):
        raise TypeError("not serializable")

    monkeypatch.setattr(json, "dump", broken_dump)
    with pytest.raises(TypeError):
        db.save()

    assert sorted(p.name for p in tmp_path.iterdir()) == ["database.json"]
    assert path.read_text() == before


def test_open_bad_entry_raises(tmp_path):
    path = tmp_path / "database.json"
    path.write_text(json.dumps({"users": {"x": {"id": "not-a-uuid"}}, "reports": {}}))
    with pytest.raises(SnapshotError):
        Database.open(path)


def test_open_other_io_error_propagates(tmp_path):
    with pytest.raises(OSError):
        Database.open(tmp_path)  # a directory, not a file


def test_save_without_path_is_noop(tmp_path):
    db = Database()
    db.store_user(make_user("alice"))
    db.save()
    assert list(tmp_path.iterdir()) == []


# ── Tests: users ─────────────────────────────────────────────────────

def test_get_user_unknown_raises():
    db = Database()
    missing = UserID.new()
    with pytest.raises(UserNotFound) as e:
        db.get_user(missing)
    assert e.value.user_id == missing
    assert db.users == {}


def test_store_and_lookup_username():
    db = Database()
    alice = make_user("alice")
    db.store_user(alice)
    assert db.lookup_username("alice") is alice
    assert db.lookup_username("bob") is None


def test_store_user_overwrites_by_id():
    db = Database()
    alice = make_user("alice")
    db.store_user(alice)
    renamed = UserData(id=alice.id, role=Role.ADMIN, username="alice2", password="x")
    db.store_user(renamed)
    assert len(db.users) == 1
    assert db.get_user(alice.id).username == "alice2"


def test_get_patients():
    db = Database()
    doctor = make_user("doctor", Role.DOCTOR)
    mine = make_user("mine", doctors=[doctor.id])
    other = make_user("other", doctors=[])
    no_folder = make_user("nofolder")
    for u in (doctor, mine, other, no_folder):
        db.store_user(u)
    assert list(db.get_patients(doctor.id)) == [mine.id]


# ── Tests: reports ───────────────────────────────────────────────────

def test_get_report_absent_returns_none():
    assert Database().get_report(ReportID.new()) is None


def test_set_report_content():
    db = Database()
    doctor, patient = make_user("doctor", Role.DOCTOR), make_user("patient")
    report = make_report(doctor, patient)
    db.store_report(report)
    assert db.set_report_content(report.id, "updated") is True
    assert db.get_report(report.id).content == "updated"
    assert db.set_report_content(ReportID.new(), "x") is False


def test_remove_reports_only_for_patient():
    db = Database()
    doctor = make_user("doctor", Role.DOCTOR)
    alice, bob = make_user("alice"), make_user("bob")
    db.store_report(make_report(doctor, alice, "a1"))
    db.store_report(make_report(doctor, alice, "a2"))
    kept = make_report(doctor, bob, "b1")
    db.store_report(kept)

    db.remove_reports(alice.id)
    assert list(db.list_reports()) == [kept]


def test_list_reports_is_lazy_iterator():
    db = Database()
    doctor, patient = make_user("doctor", Role.DOCTOR), make_user("patient")
    db.store_report(make_report(doctor, patient))
    it = db.list_reports()
    assert iter(it) is it
    assert len(list(it)) == 1
    assert list(it) == []
