"""
Role based permission classes.

The role comes from ``User.role`` and is mirrored into the JWT ``role``
claim at login.  Reads are open to every clinic role; writes are limited
to the roles that operate at the bedside.
"""
from rest_framework.permissions import BasePermission, SAFE_METHODS

CLINIC_ROLES = {"admin", "hod", "doctor", "nurse", "technician"}
CLINICAL_WRITE_ROLES = {"admin", "doctor", "nurse"}
MONITORING_ROLES = CLINICAL_WRITE_ROLES | {"technician"}
PATIENT_WRITE_ROLES = CLINICAL_WRITE_ROLES | {"hod"}
STAFF_WRITE_ROLES = {"admin", "hod"}


def _role(request):
    user = getattr(request, "user", None)
    if not (user and user.is_authenticated):
        return None
    return getattr(user, "role", None)


class IsClinicStaff(BasePermission):
    """Any authenticated user holding one of the clinic roles."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in CLINIC_ROLES


class IsAdminRole(BasePermission):
    """Allow access only to administrators."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) == "admin"


class IsClinicalStaff(BasePermission):
    """Admin, doctor or nurse."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in CLINICAL_WRITE_ROLES


class CanRecordMonitoring(BasePermission):
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        if request.method in SAFE_METHODS:
            return _role(request) in CLINIC_ROLES
        return _role(request) in MONITORING_ROLES


class ClinicalWriteOrReadOnly(BasePermission):
    """Every clinic role may read; only clinical staff may write."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        if request.method in SAFE_METHODS:
            return _role(request) in CLINIC_ROLES
        return _role(request) in CLINICAL_WRITE_ROLES


class SessionDetailAccess(BasePermission):
    """Read for all roles, update for clinical staff, delete for admins."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        role = _role(request)
        if request.method in SAFE_METHODS:
            return role in CLINIC_ROLES
        if request.method == "DELETE":
            return IsAdminRole().has_permission(request, view)
        return role in CLINICAL_WRITE_ROLES


class PatientWriteOrReadOnly(BasePermission):
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        if request.method in SAFE_METHODS:
            return _role(request) in CLINIC_ROLES
        return _role(request) in PATIENT_WRITE_ROLES


class StaffRosterAccess(BasePermission):
    """Read for all roles, roster edits for admin and HOD, removal for admins."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        if request.method in SAFE_METHODS:
            return _role(request) in CLINIC_ROLES
        if request.method == "DELETE":
            return IsAdminRole().has_permission(request, view)
        return _role(request) in STAFF_WRITE_ROLES
