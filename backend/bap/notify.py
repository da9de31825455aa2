import os
import smtplib
from email.message import EmailMessage

from .programs import PROGRAM_NAMES

EMAIL_OUTBOX: list[tuple[str, str, str]] = []


def send_email(to_email: str, subject: str, message: str, bcc: str | None = None):
    if os.getenv("TESTING") == "1":
        EMAIL_OUTBOX.append((to_email, subject, message))
        return
    server = os.getenv("SMTP_SERVER")
    if not server:
        return
    from_addr = os.getenv("EMAIL_FROM", "noreply@example.com")
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = from_addr
    msg["To"] = to_email
    if bcc:
        msg["Bcc"] = bcc
    msg.set_content(message)
    with smtplib.SMTP(server) as s:
        s.send_message(msg)


def _dispatch(member, subject: str, message: str, *, copy_admins: bool = False) -> bool:
    if not member.contact_email:
        return False
    from .tasks import enqueue_email

    bcc = os.getenv("ADMINS_EMAIL") if copy_admins else None
    enqueue_email(member.contact_email, subject, message, bcc=bcc)
    return True


def _species_label(submission) -> str:
    return submission.species_common_name or submission.species_latin_name or "your submission"


def on_submission_sent(submission, member):
    message = (
        f"Hello {member.display_name},\n\n"
        f"We received your {PROGRAM_NAMES.get(submission.program, 'BAP')} submission for "
        f"{_species_label(submission)}. An admin will screen it shortly."
    )
    return _dispatch(
        member,
        f"Submission Confirmation - {_species_label(submission)}",
        message,
        copy_admins=True,
    )


def on_submission_approved(submission, member):
    message = (
        f"Hello {member.display_name},\n\n"
        f"Your submission for {_species_label(submission)} was approved "
        f"and earned {submission.total_points or 0} points."
    )
    return _dispatch(member, f"Submission Approved! - {_species_label(submission)}", message)


def on_changes_requested(submission, member, reason: str):
    message = (
        f"Hello {member.display_name},\n\n"
        f"An admin has reviewed your submission for {_species_label(submission)} "
        f"and requested the following changes:\n\n{reason}\n\n"
        "Please update your submission and resubmit it."
    )
    return _dispatch(member, f"Changes Requested - {_species_label(submission)}", message)


def on_witness_confirmed(submission, member, witness):
    message = (
        f"Hello {member.display_name},\n\n"
        f"{witness.display_name} confirmed the screening of your submission for "
        f"{_species_label(submission)}. The waiting period has started."
    )
    return _dispatch(member, f"Screening Approved - {_species_label(submission)}", message)


def on_witness_declined(submission, member):
    message = (
        f"Hello {member.display_name},\n\n"
        f"The screening of your submission for {_species_label(submission)} was declined. "
        "Please contact the program coordinator for details."
    )
    return _dispatch(member, f"Screening Declined - {_species_label(submission)}", message)


def on_submission_denied(submission, member, reason: str):
    message = (
        f"Hello {member.display_name},\n\n"
        f"Your submission for {_species_label(submission)} was denied.\n\nReason: {reason}"
    )
    return _dispatch(member, f"Submission Denied - {_species_label(submission)}", message)


def on_level_upgrade(member, program: str, level: str, total_points: int):
    message = (
        f"Congratulations {member.display_name}!\n\n"
        f"You have reached {level} in the {PROGRAM_NAMES.get(program, program)} "
        f"with {total_points} total points."
    )
    return _dispatch(member, f"Level Upgrade - {level}", message)


def on_specialty_award(member, award_name: str):
    message = (
        f"Congratulations {member.display_name}!\n\n"
        f"You have earned the {award_name}. Thank you for the breadth of species "
        "you have bred and shared with the club."
    )
    return _dispatch(member, f"Specialty Award - {award_name}", message, copy_admins=True)
