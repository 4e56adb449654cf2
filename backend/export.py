import re
from datetime import datetime
from typing import Iterable

import pandas as pd

from answers import render_answer
from models import Questionnaire, Submission

XLS_MEDIA_TYPE = "application/vnd.ms-excel"


def _timestamp(value: datetime) -> str:
    return value.replace(microsecond=0).isoformat() if value else ""


def submissions_frame(questionnaire: Questionnaire, submissions: Iterable[Submission]) -> pd.DataFrame:
    """One row per submission, one column per question in questionnaire order."""
    questions = questionnaire.questions or []
    columns = ["Submission #", "Submitted At"] + [q["label"] for q in questions]
    rows = []
    for number, sub in enumerate(submissions, start=1):
        answers = sub.answers or {}
        rows.append(
            [number, _timestamp(sub.submitted_at)]
            + [render_answer(answers.get(q["id"])) for q in questions]
        )
    return pd.DataFrame(rows, columns=columns)


def to_csv(frame: pd.DataFrame) -> bytes:
    return frame.to_csv(index=False).encode("utf-8")


def to_xls(frame: pd.DataFrame) -> bytes:
    # HTML table that spreadsheet apps open as .xls; the BOM keeps non-ASCII intact
    return ("\ufeff" + frame.to_html(index=False, border=1)).encode("utf-8")


def export_filename(title: str, extension: str) -> str:
    stem = re.sub(r"[^A-Za-z0-9._-]+", "_", (title or "").strip()).strip("_") or "questionnaire"
    return f"{stem}_submissions.{extension}"
