import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Text, DateTime, JSON
from db import Base


def new_id() -> str:
    return uuid.uuid4().hex


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def find_question(questions, question_id: str):
    for q in questions or []:
        if q.get("id") == question_id:
            return q
    return None


class Questionnaire(Base):
    __tablename__ = "questionnaires"
    id = Column(String(32), primary_key=True, default=new_id)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    layout = Column(String(20), nullable=False, default="multi-page")
    password_hash = Column(String(128), nullable=False)
    # ordered question documents; order is navigation and export column order
    questions = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc)

    def question(self, question_id: str):
        return find_question(self.questions, question_id)


class Submission(Base):
    __tablename__ = "submissions"
    id = Column(String(32), primary_key=True, default=new_id)
    # weak reference: deleting the questionnaire leaves submissions in place
    questionnaire_id = Column(String(32), index=True, nullable=False)
    answers = Column(JSON, nullable=False, default=dict)
    submitted_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc)
