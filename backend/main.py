import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, Depends, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from config import LOG_LEVEL, ORIGINS, get_operator_secret
from db import database, get_db
from errors import AppError
from export import XLS_MEDIA_TYPE, export_filename, submissions_frame, to_csv, to_xls
from schemas import (
    Confirmation, PasswordBody, QuestionAnswerOut, QuestionAnswers, QuestionnaireCreate,
    QuestionnaireCreated, QuestionnaireOut, QuestionnaireSummary, QuestionnaireUpdate,
    SubmissionCreate, SubmissionOut,
)
from security import bearer_token, verify_operator
from services import QuestionnaireService, SubmissionService

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # a missing DATABASE_URL raises here and aborts startup
    database.create_all()
    if not get_operator_secret():
        logger.warning("OPERATOR_SECRET is not set; listing questionnaires will always be rejected")
    yield


app = FastAPI(title="Questionnaire API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ------------------------
# Error envelope
# ------------------------
def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return _error(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        where = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{where}: {first.get('msg')}" if where else first.get("msg", "Invalid request")
    else:
        message = "Invalid request"
    return _error(400, message)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(500, "Internal server error")


def get_questionnaire_service(db: Session = Depends(get_db)) -> QuestionnaireService:
    return QuestionnaireService(db)


def get_submission_service(db: Session = Depends(get_db)) -> SubmissionService:
    return SubmissionService(db)


@app.get("/health")
def health():
    """Basic readiness probe.

    Returns:
        dict: {"ok": True}
    """
    return {"ok": True}


# ------------------------
# Questionnaires
# ------------------------
@app.get("/questionnaires", response_model=List[QuestionnaireSummary], dependencies=[Depends(verify_operator)])
def list_questionnaires(service: QuestionnaireService = Depends(get_questionnaire_service)):
    """List all questionnaires as summaries (operator secret required).

    Returns:
        list[QuestionnaireSummary]: [{id, title, description, questionCount}]
    """
    return [
        QuestionnaireSummary(id=q.id, title=q.title, description=q.description,
                             question_count=len(q.questions or []))
        for q in service.list()
    ]


@app.post("/questionnaires", status_code=201, response_model=QuestionnaireCreated)
def create_questionnaire(payload: QuestionnaireCreate,
                         service: QuestionnaireService = Depends(get_questionnaire_service)):
    """Create a questionnaire and hand back its admin password exactly once.

    Args:
        payload (QuestionnaireCreate): title (required), description, layout, questions[].

    Returns:
        QuestionnaireCreated: {id, title, generatedPassword}

    Raises:
        ValidationError: 400 on a missing title or an invalid question.
    """
    row, password = service.create(payload)
    return QuestionnaireCreated(id=row.id, title=row.title, generated_password=password)


@app.get("/questionnaires/{questionnaire_id}", response_model=QuestionnaireOut)
def get_questionnaire(questionnaire_id: str,
                      service: QuestionnaireService = Depends(get_questionnaire_service)):
    """Fetch a questionnaire for respondents. Password hashes are never included.

    Raises:
        InvalidIdentifier: 400 on a malformed id.
        NotFound: 404 if no such questionnaire.
    """
    return QuestionnaireOut.from_row(service.get(questionnaire_id))


@app.put("/questionnaires/{questionnaire_id}", response_model=QuestionnaireOut)
def update_questionnaire(questionnaire_id: str, payload: QuestionnaireUpdate,
                         credential: Optional[str] = Depends(bearer_token),
                         service: QuestionnaireService = Depends(get_questionnaire_service)):
    """Replace a questionnaire's content (admin password as bearer token).

    Questions that omit ``viewPassword`` keep their current view password.

    Raises:
        ValidationError: 400 on invalid content.
        Unauthorized: 401 on a missing or wrong admin password.
        NotFound: 404 if no such questionnaire.
    """
    return QuestionnaireOut.from_row(service.update(questionnaire_id, payload, credential))


@app.delete("/questionnaires/{questionnaire_id}", response_model=Confirmation, response_model_exclude_none=True)
def delete_questionnaire(questionnaire_id: str,
                         credential: Optional[str] = Depends(bearer_token),
                         service: QuestionnaireService = Depends(get_questionnaire_service)):
    """Delete a questionnaire (admin password as bearer token). Submissions are kept.

    Returns:
        Confirmation: {"success": True, "message": ...}
    """
    service.delete(questionnaire_id, credential)
    return Confirmation(message="Questionnaire deleted successfully")


@app.post("/questionnaires/{questionnaire_id}/verify")
def verify_questionnaire_password(questionnaire_id: str, body: PasswordBody,
                                  service: QuestionnaireService = Depends(get_questionnaire_service)):
    """Check a questionnaire's admin password.

    Returns:
        dict: {"success": True}; a mismatch answers 401 {"success": False, ...}
    """
    service.verify(questionnaire_id, body.password)
    return {"success": True}


# ------------------------
# Submissions: admin views / export
# ------------------------
@app.get("/questionnaires/{questionnaire_id}/submissions", response_model=List[SubmissionOut])
def list_questionnaire_submissions(questionnaire_id: str,
                                   credential: Optional[str] = Depends(bearer_token),
                                   service: SubmissionService = Depends(get_submission_service)):
    """List every submission of a questionnaire (admin password as bearer token).

    Returns:
        list[SubmissionOut]: [{id, questionnaireId, answers, submittedAt}], possibly empty.
    """
    return [SubmissionOut.from_row(s) for s in service.list_for_questionnaire(questionnaire_id, credential)]


def _export(questionnaire_id: str, credential: Optional[str], service: SubmissionService):
    submissions = service.list_for_questionnaire(questionnaire_id, credential)
    questionnaire = service.questionnaires.get(questionnaire_id)
    return questionnaire, submissions_frame(questionnaire, submissions)


@app.get("/questionnaires/{questionnaire_id}/export.csv")
def export_csv(questionnaire_id: str,
               credential: Optional[str] = Depends(bearer_token),
               service: SubmissionService = Depends(get_submission_service)):
    """Export submissions as CSV, one column per question in questionnaire order.

    Returns:
        Response: text/csv attachment `<title>_submissions.csv`.
    """
    questionnaire, frame = _export(questionnaire_id, credential, service)
    filename = export_filename(questionnaire.title, "csv")
    return Response(content=to_csv(frame), media_type="text/csv",
                    headers={"Content-Disposition": f"attachment; filename={filename}"})


@app.get("/questionnaires/{questionnaire_id}/export.xls")
def export_xls(questionnaire_id: str,
               credential: Optional[str] = Depends(bearer_token),
               service: SubmissionService = Depends(get_submission_service)):
    """Export submissions as an HTML table that Excel opens directly.

    Returns:
        Response: application/vnd.ms-excel attachment `<title>_submissions.xls`.
    """
    questionnaire, frame = _export(questionnaire_id, credential, service)
    filename = export_filename(questionnaire.title, "xls")
    return Response(content=to_xls(frame), media_type=XLS_MEDIA_TYPE,
                    headers={"Content-Disposition": f"attachment; filename={filename}"})


def _question_answers(question: dict, pairs) -> QuestionAnswers:
    return QuestionAnswers(
        question_label=question["label"],
        answers=[QuestionAnswerOut(id=sub.id, answer=answer, submitted_at=sub.submitted_at)
                 for sub, answer in pairs],
    )


@app.post("/questionnaires/{questionnaire_id}/questions/{question_id}/submissions", response_model=QuestionAnswers)
def list_question_answers_direct(questionnaire_id: str, question_id: str, body: PasswordBody,
                                 service: SubmissionService = Depends(get_submission_service)):
    """Answers to one password-protected question of a known questionnaire.

    Raises:
        ValidationError: 400 without a password.
        Unauthorized: 401 on a wrong view password.
        Forbidden: 403 if the question has no view password.
        NotFound: 404 if questionnaire or question does not exist.
    """
    question, pairs = service.list_for_question(question_id, body.password, questionnaire_id=questionnaire_id)
    return _question_answers(question, pairs)


# ------------------------
# Submissions: public + per-question
# ------------------------
@app.post("/submissions", status_code=201, response_model=Confirmation, response_model_exclude_none=True)
def create_submission(payload: SubmissionCreate,
                      service: SubmissionService = Depends(get_submission_service)):
    """Store one respondent's answers.

    Args:
        payload (SubmissionCreate): {questionnaireId, answers{questionId: answer}}

    Returns:
        Confirmation: {"success": True, "message": ..., "id": <submission id>}

    Raises:
        ValidationError: 400 if answers is not an object or the id is missing.
        NotFound: 404 if the questionnaire does not exist.
    """
    row = service.create(payload.questionnaire_id, payload.answers)
    return Confirmation(message="Submission saved successfully", id=row.id)


@app.post("/submissions/{question_id}", response_model=QuestionAnswers)
def list_question_answers(question_id: str, body: PasswordBody,
                          service: SubmissionService = Depends(get_submission_service)):
    """Answers to one password-protected question, located by question id alone.

    Returns:
        QuestionAnswers: {questionLabel, answers: [{id, answer, submittedAt}]}
    """
    question, pairs = service.list_for_question(question_id, body.password)
    return _question_answers(question, pairs)


@app.get("/submissions/{submission_id}", response_model=SubmissionOut, dependencies=[Depends(verify_operator)])
def get_submission(submission_id: str, service: SubmissionService = Depends(get_submission_service)):
    """Fetch one submission by id (operator secret required), orphaned or not."""
    return SubmissionOut.from_row(service.get(submission_id))
