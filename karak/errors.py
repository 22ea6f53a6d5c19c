"""
Exception hierarchy shared by the store, the authorization layer and the service.
"""


class KarakError(Exception):
    """Base class for every error raised by the record service."""


# ── Not found ────────────────────────────────────────────────────────

class NotFound(KarakError, LookupError):
    """An identifier does not name any stored entity."""


class UserNotFound(NotFound):
    def __init__(self, user_id):
        super().__init__(f"Invalid user ID: {user_id}")
        self.user_id = user_id


class ReportNotFound(NotFound):
    def __init__(self, report_id):
        super().__init__(f"No such report: {report_id}")
        self.report_id = report_id


# ── Authorization / authentication ───────────────────────────────────

class AccessDenied(KarakError):
    """Raised for any refused decision; carries no detail on purpose."""

    def __init__(self):
        super().__init__("Access denied.")


class InvalidCredentials(KarakError):
    def __init__(self):
        super().__init__("Wrong password or unknown user.")


# ── Conflicts / state ────────────────────────────────────────────────

class Conflict(KarakError):
    """The operation clashes with existing data."""


class UserAlreadyExists(Conflict):
    def __init__(self, username: str):
        super().__init__(f"User already exists: {username}")
        self.username = username


class NoMedicalFolder(KarakError):
    def __init__(self, user_id):
        super().__init__(f"No medical folder for user {user_id}")
        self.user_id = user_id


# ── Persistence ──────────────────────────────────────────────────────

class SnapshotError(KarakError):
    """The snapshot file exists but cannot be decoded."""
