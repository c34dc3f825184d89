"""camelCase JSON views of domain records. Password hashes never leave here."""

from __future__ import annotations

from typing import Dict, Iterable, List

from planner.assignments.domain import Assignment
from planner.identity_access.domain import AdminPrincipal, Principal, TutorPrincipal, User


def user_to_dict(u: User) -> Dict[str, object]:
    return {
        "id": u.id,
        "firstName": u.first_name,
        "lastName": u.last_name,
        "email": u.email,
        "role": u.role.value,
        "programSpecialty": u.program_specialty,
        "certificateUrl": u.certificate_url,
        "department": u.department,
        "phoneNumber": u.phone_number,
        "momoNumber": u.momo_number,
        "university": u.university,
        "isVerified": u.is_verified,
        "isApproved": u.is_approved,
        "createdAt": u.created_at,
    }


def users_to_list(items: Iterable[User]) -> List[Dict[str, object]]:
    return [user_to_dict(u) for u in items]


def assignment_to_dict(a: Assignment) -> Dict[str, object]:
    return {
        "id": a.id,
        "studentId": a.student_id,
        "title": a.title,
        "description": a.description,
        "programSpecialty": a.program_specialty,
        "fileUrl": a.file_url,
        "status": a.status.value,
        "assignedTutorId": a.assigned_tutor_id,
        "tutorCharge": a.tutor_charge,
        "isPaid": a.is_paid,
        "paymentReference": a.payment_reference,
        "completedFileUrl": a.completed_file_url,
        "submittedAt": a.submitted_at,
        "completedAt": a.completed_at,
        "paidAt": a.paid_at,
    }


def assignments_to_list(items: Iterable[Assignment]) -> List[Dict[str, object]]:
    return [assignment_to_dict(a) for a in items]


def principal_to_dict(p: Principal) -> Dict[str, object]:
    body: Dict[str, object] = {"role": p.role.value, "email": p.email}
    if not isinstance(p, AdminPrincipal):
        body["id"] = p.user_id
    if isinstance(p, TutorPrincipal):
        body["programSpecialty"] = p.specialty
    return body
