"""Questionnaire and submission operations over the document store.

Both services take a SQLAlchemy session (one per request, injected through
``get_db``) and raise only the taxonomy in ``errors``. Store failures are
logged with the operation and id, then surfaced as ``InternalError``.
"""
import logging
import re
from contextlib import contextmanager
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from answers import ImageSelection, PlainText, parse_answer
from errors import Forbidden, InternalError, InvalidIdentifier, NotFound, Unauthorized, ValidationError
from models import Questionnaire, Submission, find_question, new_id
from schemas import QuestionIn, QuestionnaireCreate
from security import MAX_PASSWORD_BYTES, check_secret, generate_password, hash_password, verify_password

logger = logging.getLogger(__name__)

ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")
MIN_CHOICES = 2


def parse_id(value, kind: str = "Questionnaire") -> str:
    """Check that ``value`` is a syntactically valid store key."""
    if not value:
        raise ValidationError(f"{kind} ID is required")
    if not isinstance(value, str) or not ID_PATTERN.match(value):
        raise InvalidIdentifier(f"Invalid {kind} ID format")
    return value


def _clean_choices(values: List[str], field: str, position: int, drop_blank: bool = True) -> List[str]:
    cleaned = [v.strip() for v in values]
    if drop_blank:
        cleaned = [v for v in cleaned if v]
    elif any(not v for v in cleaned):
        raise ValidationError(f"Question {position}: {field} cannot contain empty values")
    if len(set(cleaned)) != len(cleaned):
        raise ValidationError(f"Question {position}: {field} must be unique")
    if len(cleaned) < MIN_CHOICES:
        raise ValidationError(f"Question {position}: at least {MIN_CHOICES} {field} are required")
    return cleaned


def _view_password_hash(q: QuestionIn, position: int, previous: Optional[dict]) -> Optional[str]:
    if "view_password" not in q.model_fields_set:
        # not sent: an edit keeps whatever protection the question already had
        return previous.get("view_password_hash") if previous else None
    if not q.view_password:
        return None
    if len(q.view_password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Question {position}: viewPassword is too long")
    return hash_password(q.view_password)


def normalize_questions(questions: List[QuestionIn], previous: Optional[List[dict]] = None) -> List[dict]:
    """Validate questions and turn them into the stored document shape.

    Raises:
        ValidationError: On a missing label, a duplicate id, or a radio /
            image-select question with fewer than two unique options.
    """
    before = {q.get("id"): q for q in previous or []}
    seen_ids = set()
    out = []
    for position, q in enumerate(questions, start=1):
        label = (q.label or "").strip()
        if not label:
            raise ValidationError(f"Question {position}: label is required")
        qid = (q.id or "").strip() or new_id()
        if qid in seen_ids:
            raise ValidationError(f"Question {position}: duplicate question id '{qid}'")
        seen_ids.add(qid)

        doc = {"id": qid, "label": label, "type": q.type}
        if q.type == "radio":
            doc["options"] = _clean_choices(q.options, "options", position)
        elif q.type == "image-select":
            if len(q.image_labels) != len(q.image_options):
                raise ValidationError(f"Question {position}: provide exactly one image label per image option")
            doc["image_options"] = _clean_choices(q.image_options, "image options", position, drop_blank=False)
            doc["image_labels"] = [text.strip() for text in q.image_labels]
            doc["instructions"] = (q.instructions or "").strip()
            doc["reasons"] = list(dict.fromkeys(r.strip() for r in q.reasons if r.strip()))

        view_hash = _view_password_hash(q, position, before.get(qid))
        if view_hash:
            doc["view_password_hash"] = view_hash
        out.append(doc)
    return out


class _StoreService:
    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _store(self, operation: str, ident: Optional[str] = None):
        try:
            yield
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Store failure during %s (id=%s)", operation, ident)
            raise InternalError(f"Error during {operation}") from exc


class QuestionnaireService(_StoreService):

    def create(self, payload: QuestionnaireCreate) -> Tuple[Questionnaire, str]:
        """Store a new questionnaire; returns it with the plaintext admin password."""
        title = (payload.title or "").strip()
        if not title:
            raise ValidationError("Questionnaire title is required.")
        questions = normalize_questions(payload.questions)
        password = generate_password()
        row = Questionnaire(
            id=new_id(),
            title=title,
            description=(payload.description or "").strip() or None,
            layout=payload.layout,
            password_hash=hash_password(password),
            questions=questions,
        )
        with self._store("create questionnaire"):
            self.db.add(row)
            self.db.commit()
        logger.info("Created questionnaire %s with %d questions", row.id, len(questions))
        return row, password

    def get(self, questionnaire_id) -> Questionnaire:
        qid = parse_id(questionnaire_id)
        with self._store("fetch questionnaire", qid):
            row = self.db.get(Questionnaire, qid)
        if row is None:
            raise NotFound("Questionnaire not found")
        return row

    def list(self) -> List[Questionnaire]:
        with self._store("list questionnaires"):
            return self.db.execute(
                select(Questionnaire).order_by(Questionnaire.created_at, Questionnaire.id)
            ).scalars().all()

    def authorize(self, row: Questionnaire, credential: Optional[str]) -> None:
        try:
            check_secret(credential, row.password_hash)
        except Unauthorized:
            logger.warning("Admin password check failed for questionnaire %s", row.id)
            raise

    def verify(self, questionnaire_id, password: Optional[str]) -> None:
        qid = parse_id(questionnaire_id)
        if not password:
            raise ValidationError("Password required")
        row = self.get(qid)
        if not verify_password(password, row.password_hash):
            logger.warning("Admin password check failed for questionnaire %s", row.id)
            raise Unauthorized("Incorrect password")

    def update(self, questionnaire_id, payload: QuestionnaireCreate, credential: Optional[str]) -> Questionnaire:
        """Replace title, description, layout and questions. The admin password is unchanged."""
        row = self.get(questionnaire_id)
        self.authorize(row, credential)
        title = (payload.title or "").strip()
        if not title:
            raise ValidationError("Questionnaire title is required.")
        questions = normalize_questions(payload.questions, previous=row.questions)
        with self._store("update questionnaire", row.id):
            row.title = title
            row.description = (payload.description or "").strip() or None
            row.layout = payload.layout
            row.questions = questions
            self.db.commit()
        logger.info("Updated questionnaire %s", row.id)
        return row

    def delete(self, questionnaire_id, credential: Optional[str]) -> None:
        row = self.get(questionnaire_id)
        self.authorize(row, credential)
        with self._store("delete questionnaire", row.id):
            self.db.delete(row)
            self.db.commit()
        logger.info("Deleted questionnaire %s; its submissions are kept", row.id)

    def find_questions(self, question_id: str) -> List[Tuple[str, dict]]:
        """Every (questionnaire id, question) holding ``question_id``, in creation order.

        Question ids are only unique within one questionnaire, so several
        questionnaires can match.
        """
        with self._store("scan questions", question_id):
            rows = self.db.execute(
                select(Questionnaire.id, Questionnaire.questions)
                .order_by(Questionnaire.created_at, Questionnaire.id)
            ).all()
        matches = []
        for qid, questions in rows:
            question = find_question(questions, question_id)
            if question is not None:
                matches.append((qid, question))
        return matches


class SubmissionService(_StoreService):

    def __init__(self, db: Session, questionnaires: Optional[QuestionnaireService] = None):
        super().__init__(db)
        self.questionnaires = questionnaires or QuestionnaireService(db)

    def create(self, questionnaire_id, answers) -> Submission:
        qid = parse_id(questionnaire_id)
        if not isinstance(answers, dict):
            raise ValidationError("A valid questionnaireId and answers object are required")
        questionnaire = self.questionnaires.get(qid)
        self._check_answers(questionnaire, answers)
        row = Submission(id=new_id(), questionnaire_id=questionnaire.id, answers=answers)
        with self._store("create submission", questionnaire.id):
            self.db.add(row)
            self.db.commit()
        logger.info("Stored submission %s for questionnaire %s", row.id, questionnaire.id)
        return row

    def _check_answers(self, questionnaire: Questionnaire, answers: dict) -> None:
        # advisory only: mismatches are logged, never rejected
        for key, value in answers.items():
            question = questionnaire.question(key)
            if question is None:
                logger.warning("Questionnaire %s has no question %r", questionnaire.id, key)
                continue
            if value is None:
                continue
            answer = parse_answer(value)
            expected = ImageSelection if question["type"] == "image-select" else PlainText
            if not isinstance(answer, expected):
                logger.warning("Answer to %s in questionnaire %s does not match type %s",
                               key, questionnaire.id, question["type"])

    def _for_questionnaire(self, questionnaire_id: str) -> List[Submission]:
        with self._store("list submissions", questionnaire_id):
            return self.db.execute(
                select(Submission)
                .where(Submission.questionnaire_id == questionnaire_id)
                .order_by(Submission.submitted_at, Submission.id)
            ).scalars().all()

    def list_for_questionnaire(self, questionnaire_id, credential: Optional[str]) -> List[Submission]:
        questionnaire = self.questionnaires.get(questionnaire_id)
        self.questionnaires.authorize(questionnaire, credential)
        return self._for_questionnaire(questionnaire.id)

    def list_for_question(self, question_id: str, password: Optional[str],
                          questionnaire_id=None) -> Tuple[dict, List[Tuple[Submission, object]]]:
        """Answers to one password-protected question across all submissions.

        Returns:
            tuple: (question document, [(submission, answer), ...]) with
            submissions lacking an answer to the question left out.

        Raises:
            ValidationError: No password given.
            NotFound: No such question.
            Forbidden: The question has no view password of its own.
            Unauthorized: The password does not match the view password.
        """
        if not password:
            raise ValidationError("Password is required")
        if questionnaire_id is None:
            candidates = self.questionnaires.find_questions(question_id)
        else:
            questionnaire = self.questionnaires.get(questionnaire_id)
            question = questionnaire.question(question_id)
            candidates = [(questionnaire.id, question)] if question is not None else []
        if not candidates:
            raise NotFound("Question not found")

        protected = [(qid, q) for qid, q in candidates if q.get("view_password_hash")]
        if not protected:
            raise Forbidden("This question is not password-protected")
        # the password picks which questionnaire's copy of a shared id is being read
        match = next(
            ((qid, q) for qid, q in protected if verify_password(password, q["view_password_hash"])),
            None,
        )
        if match is None:
            logger.warning("View password check failed for question %s", question_id)
            raise Unauthorized("Invalid password")
        owner_id, question = match

        pairs = []
        for sub in self._for_questionnaire(owner_id):
            answer = (sub.answers or {}).get(question_id)
            if answer is not None:
                pairs.append((sub, answer))
        return question, pairs

    def get(self, submission_id) -> Submission:
        sid = parse_id(submission_id, kind="Submission")
        with self._store("fetch submission", sid):
            row = self.db.get(Submission, sid)
        if row is None:
            raise NotFound("Submission not found")
        return row
