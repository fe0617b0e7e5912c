"""
School Permission Definitions

Permissions are a flat catalog grouped by category for display only.
Each standard role has an out-of-the-box permission set used to seed or
reset a school's role_permissions rows.

Categories:
    - STUDENT: Student records
    - STAFF: Staff records
    - FEE: Fee management and collection
    - ACADEMIC: Classes and subjects
    - ATTENDANCE: Attendance registers
    - EXAM: Examinations and marks
    - REPORT: Reporting
    - SETTINGS: School configuration and role management
"""

from enum import Enum
from typing import Dict, Iterable, List, Tuple

from .roles import Role


class Permission(str, Enum):
    """
    All permissions in the system.

    Naming: action_resource (e.g., view_students, mark_attendance)
    """

    # Student Management
    VIEW_STUDENTS = "view_students"
    ADD_STUDENT = "add_student"
    EDIT_STUDENT = "edit_student"
    DELETE_STUDENT = "delete_student"

    # Staff Management
    VIEW_STAFF = "view_staff"
    ADD_STAFF = "add_staff"
    EDIT_STAFF = "edit_staff"
    DELETE_STAFF = "delete_staff"

    # Fee Management
    VIEW_FEES = "view_fees"
    ADD_FEE = "add_fee"
    EDIT_FEE = "edit_fee"
    DELETE_FEE = "delete_fee"
    COLLECT_FEE = "collect_fee"

    # Academic Management
    VIEW_CLASSES = "view_classes"
    MANAGE_CLASSES = "manage_classes"
    VIEW_SUBJECTS = "view_subjects"
    MANAGE_SUBJECTS = "manage_subjects"

    # Attendance Management
    VIEW_ATTENDANCE = "view_attendance"
    MARK_ATTENDANCE = "mark_attendance"

    # Examination Management
    VIEW_EXAMS = "view_exams"
    MANAGE_EXAMS = "manage_exams"
    ENTER_MARKS = "enter_marks"

    # Report Management
    VIEW_REPORTS = "view_reports"
    GENERATE_REPORTS = "generate_reports"

    # Settings & Configuration
    MANAGE_SETTINGS = "manage_settings"
    MANAGE_ROLES = "manage_roles"


class Category(str, Enum):
    """Permission categories."""
    STUDENT = "student"
    STAFF = "staff"
    FEE = "fee"
    ACADEMIC = "academic"
    ATTENDANCE = "attendance"
    EXAM = "exam"
    REPORT = "report"
    SETTINGS = "settings"


PERMISSION_CATEGORIES: Dict[Permission, Category] = {
    Permission.VIEW_STUDENTS: Category.STUDENT,
    Permission.ADD_STUDENT: Category.STUDENT,
    Permission.EDIT_STUDENT: Category.STUDENT,
    Permission.DELETE_STUDENT: Category.STUDENT,
    Permission.VIEW_STAFF: Category.STAFF,
    Permission.ADD_STAFF: Category.STAFF,
    Permission.EDIT_STAFF: Category.STAFF,
    Permission.DELETE_STAFF: Category.STAFF,
    Permission.VIEW_FEES: Category.FEE,
    Permission.ADD_FEE: Category.FEE,
    Permission.EDIT_FEE: Category.FEE,
    Permission.DELETE_FEE: Category.FEE,
    Permission.COLLECT_FEE: Category.FEE,
    Permission.VIEW_CLASSES: Category.ACADEMIC,
    Permission.MANAGE_CLASSES: Category.ACADEMIC,
    Permission.VIEW_SUBJECTS: Category.ACADEMIC,
    Permission.MANAGE_SUBJECTS: Category.ACADEMIC,
    Permission.VIEW_ATTENDANCE: Category.ATTENDANCE,
    Permission.MARK_ATTENDANCE: Category.ATTENDANCE,
    Permission.VIEW_EXAMS: Category.EXAM,
    Permission.MANAGE_EXAMS: Category.EXAM,
    Permission.ENTER_MARKS: Category.EXAM,
    Permission.VIEW_REPORTS: Category.REPORT,
    Permission.GENERATE_REPORTS: Category.REPORT,
    Permission.MANAGE_SETTINGS: Category.SETTINGS,
    Permission.MANAGE_ROLES: Category.SETTINGS,
}

_PERMISSION_VALUES = frozenset(p.value for p in Permission)


# =============================================================================
# ROLE -> DEFAULT PERMISSION MAPPING
# =============================================================================

DEFAULT_ROLE_PERMISSIONS: Dict[Role, Tuple[Permission, ...]] = {
    # ADMIN: Everything
    Role.ADMIN: tuple(Permission),

    # PRINCIPAL: No deletes, no marks entry, no role management
    Role.PRINCIPAL: (
        Permission.VIEW_STUDENTS,
        Permission.ADD_STUDENT,
        Permission.EDIT_STUDENT,
        Permission.VIEW_STAFF,
        Permission.ADD_STAFF,
        Permission.EDIT_STAFF,
        Permission.VIEW_FEES,
        Permission.ADD_FEE,
        Permission.EDIT_FEE,
        Permission.COLLECT_FEE,
        Permission.VIEW_CLASSES,
        Permission.MANAGE_CLASSES,
        Permission.VIEW_SUBJECTS,
        Permission.MANAGE_SUBJECTS,
        Permission.VIEW_ATTENDANCE,
        Permission.MARK_ATTENDANCE,
        Permission.VIEW_EXAMS,
        Permission.MANAGE_EXAMS,
        Permission.VIEW_REPORTS,
        Permission.GENERATE_REPORTS,
        Permission.MANAGE_SETTINGS,
    ),

    # TEACHER: Read access plus attendance and marks
    Role.TEACHER: (
        Permission.VIEW_STUDENTS,
        Permission.VIEW_CLASSES,
        Permission.VIEW_SUBJECTS,
        Permission.VIEW_ATTENDANCE,
        Permission.MARK_ATTENDANCE,
        Permission.VIEW_EXAMS,
        Permission.ENTER_MARKS,
        Permission.VIEW_REPORTS,
    ),

    # STUDENT: Own fees only
    Role.STUDENT: (
        Permission.VIEW_FEES,
    ),
}


def get_default_permissions(role: str) -> List[Permission]:
    """Default permission set for a standard role (empty for anything else)."""
    try:
        return list(DEFAULT_ROLE_PERMISSIONS[Role(role)])
    except ValueError:
        return []


def is_permission(value: object) -> bool:
    return isinstance(value, str) and value in _PERMISSION_VALUES


def find_invalid_permissions(values: Iterable[object]) -> List[str]:
    """Entries that are not known permission values, in input order."""
    return [str(value) for value in values if not is_permission(value)]


def normalize_permissions(values: Iterable[str]) -> List[Permission]:
    """
    Convert permission strings to Permission members.

    Drops duplicates while keeping first-seen order. Raises ValueError on an
    unknown value; callers validate with find_invalid_permissions first.
    """
    result: List[Permission] = []
    for value in values:
        permission = Permission(value)
        if permission not in result:
            result.append(permission)
    return result
