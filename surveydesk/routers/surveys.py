"""Survey endpoints.

Public:
- read one survey with its questions (respondent form).

Admin (bearer token):
- create, list, update, delete surveys (delete removes their responses);
- export: compile the responses into a workbook and deliver it to the report
  chat, or download the same workbook directly.
"""
# surveydesk/routers/surveys.py
from typing import List
from urllib.parse import quote
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import Response as HttpResponse
from starlette.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from surveydesk.core.errors import SurveyDeskError, to_http
from surveydesk.core.security import require_admin
from surveydesk.db.session import get_db
from surveydesk.schemas.survey import SurveyIn, SurveyOut, SurveyListItem, SurveyDeleted, DeliveryOut
from surveydesk.services import surveys as survey_service
from surveydesk.services.delivery import build_artifact
from surveydesk.services.export import XLSX_MEDIA_TYPE

router = APIRouter()


@router.get("/api/surveys/{survey_id}", response_model=SurveyOut)
def read_survey(survey_id: str, db: Session = Depends(get_db)):
    try:
        return survey_service.get_survey(db, survey_id)
    except SurveyDeskError as e:
        raise to_http(e)


@router.post("/api/surveys", response_model=SurveyOut, status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
def create_survey(payload: SurveyIn, db: Session = Depends(get_db)):
    return survey_service.create_survey(db, payload)


@router.get("/api/surveys", response_model=List[SurveyListItem], dependencies=[Depends(require_admin)])
def list_surveys(db: Session = Depends(get_db)):
    return survey_service.list_surveys(db)


@router.put("/api/surveys/{survey_id}", response_model=SurveyOut, dependencies=[Depends(require_admin)])
def update_survey(survey_id: str, payload: SurveyIn, db: Session = Depends(get_db)):
    try:
        return survey_service.update_survey(db, survey_id, payload)
    except SurveyDeskError as e:
        raise to_http(e)


@router.delete("/api/surveys/{survey_id}", response_model=SurveyDeleted, dependencies=[Depends(require_admin)])
def delete_survey(survey_id: str, db: Session = Depends(get_db)):
    try:
        purged = survey_service.delete_survey(db, survey_id)
    except SurveyDeskError as e:
        raise to_http(e)
    return SurveyDeleted(survey_id=survey_id, deleted_responses=purged)


def _load_survey_with_responses(db: Session, survey_id: str):
    return survey_service.get_survey(db, survey_id), survey_service.list_responses(db, survey_id)


@router.get("/api/surveys/{survey_id}/export", response_model=DeliveryOut, dependencies=[Depends(require_admin)])
async def export_survey(survey_id: str, request: Request, db: Session = Depends(get_db)):
    """Send the survey report workbook to the configured report chat.

    Errors:
        400: The survey has no responses.
        404: The survey does not exist.
        500: The delivery channel is not configured.
        502/504: The channel call failed or timed out.
    """
    try:
        survey, responses = await run_in_threadpool(_load_survey_with_responses, db, survey_id)
        ack = await request.app.state.delivery.deliver(survey, responses)
    except SurveyDeskError as e:
        raise to_http(e)

    return DeliveryOut(survey_id=ack.survey_id, filename=ack.filename, response_count=ack.response_count)


@router.get("/api/surveys/{survey_id}/report.xlsx", dependencies=[Depends(require_admin)])
def download_report(survey_id: str, db: Session = Depends(get_db)):
    try:
        survey = survey_service.get_survey(db, survey_id)
        artifact = build_artifact(survey, survey_service.list_responses(db, survey_id))
    except SurveyDeskError as e:
        raise to_http(e)

    return HttpResponse(
        content=artifact.payload,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(artifact.filename)}"},
    )
