# schemas.py
from datetime import datetime
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Literal, Optional

QuestionType = Literal["radio", "text", "image-select"]
Layout = Literal["multi-page", "single-page"]


class QuestionIn(BaseModel):
    id: Optional[str] = None
    label: str = ""
    type: QuestionType = "radio"
    options: List[str] = []
    instructions: Optional[str] = None
    image_options: List[str] = Field(default_factory=list, alias="imageOptions")
    image_labels: List[str] = Field(default_factory=list, alias="imageLabels")
    reasons: List[str] = []
    view_password: Optional[str] = Field(default=None, alias="viewPassword")
    class Config:
        populate_by_name = True


class QuestionnaireCreate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    layout: Layout = "multi-page"
    questions: List[QuestionIn] = []


class QuestionnaireUpdate(QuestionnaireCreate):
    pass


class QuestionnaireCreated(BaseModel):
    id: str
    title: str
    generated_password: str = Field(alias="generatedPassword")
    class Config:
        populate_by_name = True


class QuestionOut(BaseModel):
    id: str
    label: str
    type: QuestionType
    options: List[str] = []
    instructions: Optional[str] = None
    image_options: List[str] = Field(default_factory=list, alias="imageOptions")
    image_labels: List[str] = Field(default_factory=list, alias="imageLabels")
    reasons: List[str] = []
    password_protected: bool = Field(default=False, alias="passwordProtected")
    class Config:
        populate_by_name = True

    @classmethod
    def from_document(cls, doc: dict) -> "QuestionOut":
        return cls(
            id=doc["id"],
            label=doc["label"],
            type=doc["type"],
            options=doc.get("options") or [],
            instructions=doc.get("instructions"),
            image_options=doc.get("image_options") or [],
            image_labels=doc.get("image_labels") or [],
            reasons=doc.get("reasons") or [],
            password_protected=bool(doc.get("view_password_hash")),
        )


class QuestionnaireOut(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    layout: Layout
    questions: List[QuestionOut]
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    class Config:
        populate_by_name = True

    @classmethod
    def from_row(cls, row) -> "QuestionnaireOut":
        return cls(
            id=row.id,
            title=row.title,
            description=row.description,
            layout=row.layout,
            questions=[QuestionOut.from_document(q) for q in row.questions or []],
            created_at=row.created_at,
        )


class QuestionnaireSummary(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    question_count: int = Field(alias="questionCount")
    class Config:
        populate_by_name = True


class PasswordBody(BaseModel):
    password: Optional[str] = None


class SubmissionCreate(BaseModel):
    questionnaire_id: Optional[str] = Field(default=None, alias="questionnaireId")
    answers: Any = None
    class Config:
        populate_by_name = True


class SubmissionOut(BaseModel):
    id: str
    questionnaire_id: str = Field(alias="questionnaireId")
    answers: Dict[str, Any]
    submitted_at: datetime = Field(alias="submittedAt")
    class Config:
        populate_by_name = True

    @classmethod
    def from_row(cls, row) -> "SubmissionOut":
        return cls(
            id=row.id,
            questionnaire_id=row.questionnaire_id,
            answers=dict(row.answers or {}),
            submitted_at=row.submitted_at,
        )


class QuestionAnswerOut(BaseModel):
    id: str
    answer: Any
    submitted_at: datetime = Field(alias="submittedAt")
    class Config:
        populate_by_name = True


class QuestionAnswers(BaseModel):
    question_label: str = Field(alias="questionLabel")
    answers: List[QuestionAnswerOut]
    class Config:
        populate_by_name = True


class Confirmation(BaseModel):
    success: bool = True
    message: Optional[str] = None
    id: Optional[str] = None
