# surveydesk/routers/responses.py
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from surveydesk.core.errors import SurveyDeskError, to_http
from surveydesk.db.session import get_db
from surveydesk.schemas.response import ResponseSubmission, ResponseAccepted
from surveydesk.services.intake import submit_response

router = APIRouter()


@router.post("/api/responses", response_model=ResponseAccepted, status_code=status.HTTP_201_CREATED)
def create_response(payload: ResponseSubmission, request: Request, db: Session = Depends(get_db)):
    """Submit one respondent's answers.

    Errors:
        404: The survey does not exist.
        409: This phone number has already answered the survey.
        422: Malformed body (missing name/phone, bad answer entries).
    """
    try:
        response = submit_response(db, request.app.state.dispatcher, payload)
    except SurveyDeskError as e:
        raise to_http(e)

    return ResponseAccepted(
        response_id=response.response_id,
        survey_id=response.survey_id,
        submitted_at=response.submitted_at,
    )
