"""
Domain dataclasses used across the application.

Every model converts to and from plain JSON-compatible dicts; that form is both
the snapshot encoding and what the HTTP layer returns.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Set


class Role(str, Enum):
    DOCTOR = "Doctor"
    PATIENT = "Patient"
    ADMIN = "Admin"

    def __str__(self) -> str:
        return self.value


class BloodType(str, Enum):
    """ABO blood group."""
    A = "A"
    AB = "AB"
    B = "B"
    O = "O"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, order=True)
class UserID:
    """Opaque, randomly generated user identifier."""
    value: uuid.UUID

    @classmethod
    def new(cls) -> "UserID":
        return cls(uuid.uuid4())

    @classmethod
    def parse(cls, text: str) -> "UserID":
        return cls(uuid.UUID(str(text)))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True, order=True)
class ReportID:
    """Opaque, randomly generated report identifier."""
    value: uuid.UUID

    @classmethod
    def new(cls) -> "ReportID":
        return cls(uuid.uuid4())

    @classmethod
    def parse(cls, text: str) -> "ReportID":
        return cls(uuid.UUID(str(text)))

    def __str__(self) -> str:
        return str(self.value)


@dataclass
class PersonalData:
    avs_number: str          # already validated AVS number
    blood_type: BloodType

    def to_dict(self) -> Dict[str, Any]:
        return {"avs_number": self.avs_number, "blood_type": self.blood_type.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PersonalData":
        return cls(avs_number=str(data["avs_number"]), blood_type=BloodType(data["blood_type"]))


@dataclass
class MedicalFolder:
    """Personal data plus the set of treating doctors allowed into the folder."""
    personal_data: PersonalData
    doctors: Set[UserID] = field(default_factory=set)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "personal_data": self.personal_data.to_dict(),
            "doctors": [str(d) for d in sorted(self.doctors)],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MedicalFolder":
        return cls(
            personal_data=PersonalData.from_dict(data["personal_data"]),
            doctors={UserID.parse(d) for d in data.get("doctors", [])},
        )


@dataclass
class UserData:
    """
    A registered user. Independently of its role, a user may or may not have a
    medical folder.
    """
    id: UserID
    role: Role
    username: str
    password: str            # password hash (PHC string)
    medical_folder: Optional[MedicalFolder] = None

    def has_doctor(self, doctor: UserID) -> bool:
        if self.medical_folder is None:
            return False
        return doctor in self.medical_folder.doctors

    def __str__(self) -> str:
        return self.username

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "role": self.role.value,
            "username": self.username,
            "password": self.password,
            "medical_folder": self.medical_folder.to_dict() if self.medical_folder else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserData":
        folder = data.get("medical_folder")
        return cls(
            id=UserID.parse(data["id"]),
            role=Role(data["role"]),
            username=str(data["username"]),
            password=str(data["password"]),
            medical_folder=MedicalFolder.from_dict(folder) if folder else None,
        )


@dataclass
class MedicalReport:
    id: ReportID
    title: str
    author: UserID
    patient: UserID
    content: str

    def __str__(self) -> str:
        return self.title

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "title": self.title,
            "author": str(self.author),
            "patient": str(self.patient),
            "content": self.content,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MedicalReport":
        return cls(
            id=ReportID.parse(data["id"]),
            title=str(data["title"]),
            author=UserID.parse(data["author"]),
            patient=UserID.parse(data["patient"]),
            content=str(data["content"]),
        )
