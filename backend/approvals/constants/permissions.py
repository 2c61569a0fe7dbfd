"""Central enum-like definitions to avoid typos in capability, role and status strings.
Extend cautiously; never rename values silently since they are persisted in JSON payloads
and permission documents.
"""
from __future__ import annotations
from typing import Dict, List, Tuple

# --- Roles ---
ROLE_CANDIDATE = 'candidate'
ROLE_MANAGER = 'manager'
ROLE_SERVICE_PROVIDER = 'service_provider'
ALL_ROLES = (ROLE_CANDIDATE, ROLE_MANAGER, ROLE_SERVICE_PROVIDER)

# --- Manager capabilities ---
MANAGE_COURSES = 'manage_courses'
MANAGE_INTERNSHIPS = 'manage_internships'
APPROVE_APPLICATIONS = 'approve_applications'
REJECT_APPLICATIONS = 'reject_applications'
VIEW_ALL_APPLICATIONS = 'view_all_applications'
MANAGE_NOTIFICATIONS = 'manage_notifications'

CAPABILITIES: Tuple[str, ...] = (
    MANAGE_COURSES,
    MANAGE_INTERNSHIPS,
    APPROVE_APPLICATIONS,
    REJECT_APPLICATIONS,
    VIEW_ALL_APPLICATIONS,
    MANAGE_NOTIFICATIONS,
)

# Master switch stored alongside the flags in a permission document
FULL_ACCESS = 'full_access'

CAPABILITY_DESCRIPTIONS: Dict[str, str] = {
    MANAGE_COURSES: 'manage courses',
    MANAGE_INTERNSHIPS: 'manage internships',
    APPROVE_APPLICATIONS: 'approve applications',
    REJECT_APPLICATIONS: 'reject applications',
    VIEW_ALL_APPLICATIONS: 'view all applications',
    MANAGE_NOTIFICATIONS: 'manage notifications',
}

# --- Approval requests ---
KIND_MANAGER_ACCOUNT = 'manager_account'
KIND_COURSE_ENROLLMENT = 'course_enrollment'
KIND_SERVICE_PROVIDER_ACCOUNT = 'service_provider_account'
ALL_KINDS = (KIND_MANAGER_ACCOUNT, KIND_COURSE_ENROLLMENT, KIND_SERVICE_PROVIDER_ACCOUNT)

# Kinds whose acceptance creates a principal; decided only by full-access managers
ACCOUNT_KINDS = (KIND_MANAGER_ACCOUNT, KIND_SERVICE_PROVIDER_ACCOUNT)

STATUS_PENDING = 'pending'
STATUS_ACCEPTED = 'accepted'
STATUS_REJECTED = 'rejected'
ALL_STATUSES = (STATUS_PENDING, STATUS_ACCEPTED, STATUS_REJECTED)
ACTIVE_STATUSES = (STATUS_PENDING, STATUS_ACCEPTED)

OUTCOME_ACCEPT = 'accept'
OUTCOME_REJECT = 'reject'
ALL_OUTCOMES = (OUTCOME_ACCEPT, OUTCOME_REJECT)

OUTCOME_STATUS = {
    OUTCOME_ACCEPT: STATUS_ACCEPTED,
    OUTCOME_REJECT: STATUS_REJECTED,
}

# --- Cart ---
ITEM_COURSE = 'course'
ITEM_INTERNSHIP = 'internship'
ALL_ITEM_TYPES = (ITEM_COURSE, ITEM_INTERNSHIP)

# Service provider profile fields accepted on submission
PROVIDER_PROFILE_FIELDS: List[str] = ['phone', 'secondary_phone', 'address', 'experience', 'bio']

__all__ = [name for name in dir() if name.isupper()]
