from pathlib import Path

import pandas as pd
from filelock import FileLock
from flask import current_app

from quizportal.models import EventQuiz, QuizCredential

COLUMNS = [
    "Username",
    "Name",
    "Email",
    "Team",
    "College",
    "Department",
    "Year",
    "Phone",
    "Admission No",
    "Active",
    "Attempted",
    "Failed Attempts",
    "Locked",
    "Lock Expiry",
    "Last Login",
]


def write_credentials_to_excel(quiz: EventQuiz) -> str:
    """
    Snapshot a quiz's participant credentials into the configured export directory.
    Password hashes are never written.
    """
    output_path = Path(current_app.config["EXCEL_OUTPUT_DIR"]) / f"quiz_{quiz.id}_credentials.xlsx"
    output_path.parent.mkdir(parents=True, exist_ok=True)

    lock = FileLock(str(output_path) + ".lock")

    credentials = (
        QuizCredential.query.filter_by(quiz_id=quiz.id)
        .order_by(QuizCredential.created_at.asc(), QuizCredential.id.asc())
        .all()
    )
    data = []
    for cred in credentials:
        data.append(
            {
                "Username": cred.username,
                "Name": cred.participant_name or "",
                "Email": cred.participant_email or "",
                "Team": cred.team_name or "",
                "College": cred.college or "",
                "Department": cred.department or "",
                "Year": cred.year or "",
                "Phone": cred.phone_number or "",
                "Admission No": cred.admission_number or "",
                "Active": "Yes" if cred.is_active else "No",
                "Attempted": "Yes" if cred.has_attempted_quiz else "No",
                "Failed Attempts": cred.failed_attempts or 0,
                "Locked": "Yes" if cred.locked else "No",
                "Lock Expiry": cred.lock_expiry.isoformat() if cred.lock_expiry else "",
                "Last Login": cred.last_successful_login.isoformat() if cred.last_successful_login else "",
            }
        )

    df = pd.DataFrame(data, columns=COLUMNS)

    try:
        with lock:
            df.to_excel(output_path, index=False, sheet_name="Credentials", engine="openpyxl")
    except Exception:
        current_app.logger.exception("Failed to write credentials Excel snapshot to %s", output_path)
        raise

    return str(output_path)
