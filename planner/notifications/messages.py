"""
Email templates for lifecycle and account notifications.

Each builder returns a ready `EmailMessage`; the services decide recipients
and when to emit. Amounts are rendered with two decimals in the configured
currency.
"""
from __future__ import annotations

from .ports import EmailMessage

SIGNATURE = "Best regards,\nA+ Planner Team"


def _money(amount: float | None, currency: str) -> str:
    return f"{currency} {float(amount or 0):.2f}"


def assignment_submitted(*, admin_email: str, title: str, specialty: str) -> EmailMessage:
    return EmailMessage(
        to=admin_email,
        subject="New Assignment Submitted",
        body=(
            "A new assignment has been submitted by a student.\n\n"
            f"Title: {title}\nProgram Specialty: {specialty}\nStatus: Pending"
        ),
    )


def assignment_opened(*, admin_email: str, title: str, specialty: str) -> EmailMessage:
    return EmailMessage(
        to=admin_email,
        subject="Assignment Open for Tutors",
        body=(
            f'The assignment "{title}" is now open for tutors with program specialty {specialty}.\n\n'
            f"{SIGNATURE}"
        ),
    )


def assignment_assigned_to_tutor(*, tutor_email: str, tutor_first_name: str, title: str) -> EmailMessage:
    return EmailMessage(
        to=tutor_email,
        subject="New Assignment Assigned to You",
        body=(
            f"Dear {tutor_first_name},\n\n"
            "A new assignment has been assigned to you. Please log in to your account to review "
            "and start working on it.\n\n"
            f"Assignment Title: {title}\n\nThank you for your collaboration.\n\n{SIGNATURE}"
        ),
    )


def assignment_assigned_admin(*, admin_email: str, tutor_name: str, tutor_email: str, title: str) -> EmailMessage:
    return EmailMessage(
        to=admin_email,
        subject="Assignment Assigned Notification",
        body=(
            f"An assignment has been successfully assigned to tutor {tutor_name}.\n\n"
            f"Assignment Title: {title}\nTutor Email: {tutor_email}\n\n{SIGNATURE}"
        ),
    )


def assignment_claimed(*, admin_email: str, tutor_name: str, title: str) -> EmailMessage:
    return EmailMessage(
        to=admin_email,
        subject="Assignment Claimed by Tutor",
        body=f'Tutor {tutor_name} has claimed the assignment "{title}".\n\n{SIGNATURE}',
    )


def assignment_priced_student(*, student_email: str, student_first_name: str, title: str, price: float, currency: str) -> EmailMessage:
    return EmailMessage(
        to=student_email,
        subject="Assignment Accepted and Priced",
        body=(
            f"Hello {student_first_name},\n\n"
            f'The tutor has accepted your assignment titled "{title}" and set the price at '
            f"{_money(price, currency)}.\n\n"
            "You will be able to pay once the solution has been uploaded.\n\n"
            f"{SIGNATURE}"
        ),
    )


def assignment_priced_admin(*, admin_email: str, title: str, price: float, currency: str) -> EmailMessage:
    return EmailMessage(
        to=admin_email,
        subject="Tutor Accepted and Priced Assignment",
        body=(
            f'The assignment titled "{title}" has been accepted by the tutor.\n'
            f"The tutor has set the price at {_money(price, currency)}.\n\n{SIGNATURE}"
        ),
    )


def assignment_rejected(*, admin_email: str, title: str, tutor_name: str) -> EmailMessage:
    return EmailMessage(
        to=admin_email,
        subject="Assignment Rejected by Tutor",
        body=(
            f'Tutor {tutor_name} has rejected the assignment "{title}". '
            "It will not be reassigned automatically.\n\n"
            f"{SIGNATURE}"
        ),
    )


def assignment_completed(*, student_email: str, title: str, charge: float | None, currency: str) -> EmailMessage:
    return EmailMessage(
        to=student_email,
        subject="Your Assignment is Completed",
        body=(
            f'Your assignment "{title}" has been completed. To access the solution file, please proceed '
            f"with the payment of {_money(charge, currency)}. Once payment is confirmed, you will be able "
            "to download the solution."
        ),
    )


def solution_available(*, student_email: str, title: str, download_url: str) -> EmailMessage:
    return EmailMessage(
        to=student_email,
        subject="Assignment Solution Available",
        body=(
            f'Your assignment "{title}" is now available. Please download your solution from the '
            f"following link: {download_url}"
        ),
    )


def tutor_approved(*, tutor_email: str) -> EmailMessage:
    return EmailMessage(
        to=tutor_email,
        subject="Your Tutor Account is Approved!",
        body=(
            "Congratulations! Your tutor account has been approved. "
            "You can now log in and start receiving assignments."
        ),
    )


def tutor_application_rejected(*, tutor_email: str) -> EmailMessage:
    return EmailMessage(
        to=tutor_email,
        subject="Tutor Application Rejected",
        body=(
            "Unfortunately, your tutor application has been rejected. "
            "Please contact support for more details."
        ),
    )
