"""Survey records and their responses.

Survey create/read/update is the admin surface the rest of the service leans
on. Deleting a survey is one unit of work: the responses that reference it
are purged first, then the survey itself, and both are committed together.
"""
# surveydesk/services/surveys.py
import logging
from typing import List

from sqlalchemy import delete as sa_delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from surveydesk.core.errors import InternalError, NotFoundError
from surveydesk.db.models import Survey, Question, Response
from surveydesk.schemas.survey import SurveyIn

logger = logging.getLogger(__name__)


def _build_questions(data: SurveyIn) -> List[Question]:
    return [
        Question(position=i, text=q.text, kind=q.kind, options=list(q.options))
        for i, q in enumerate(data.questions)
    ]


def create_survey(db: Session, data: SurveyIn) -> Survey:
    survey = Survey(title=data.title, description=data.description, questions=_build_questions(data))
    db.add(survey)
    db.commit()
    logger.info("Survey created: %s (%s)", survey.title, survey.survey_id)
    return survey


def get_survey(db: Session, survey_id: str) -> Survey:
    survey = db.get(Survey, survey_id)
    if not survey:
        raise NotFoundError(f"Survey {survey_id} not found")
    return survey


def list_surveys(db: Session) -> List[Survey]:
    return list(db.execute(select(Survey).order_by(Survey.created_at.desc())).scalars().all())


def update_survey(db: Session, survey_id: str, data: SurveyIn) -> Survey:
    survey = get_survey(db, survey_id)
    survey.title = data.title
    survey.description = data.description
    survey.questions = _build_questions(data)
    db.commit()
    logger.info("Survey updated: %s (%s)", survey.title, survey.survey_id)
    return survey


def list_responses(db: Session, survey_id: str) -> List[Response]:
    """Responses of a survey, oldest first."""
    return list(
        db.execute(
            select(Response)
            .where(Response.survey_id == survey_id)
            .order_by(Response.submitted_at.asc(), Response.response_id.asc())
        ).scalars().all()
    )


def purge_responses(db: Session, survey_id: str) -> int:
    """Delete every response of a survey. Idempotent; does not commit."""
    result = db.execute(sa_delete(Response).where(Response.survey_id == survey_id))
    return result.rowcount or 0


def delete_survey(db: Session, survey_id: str) -> int:
    """Delete a survey together with its responses.

    Returns the number of responses removed. The purge runs even when the
    survey is already gone, so retrying after a partial failure leaves no
    orphaned responses; `NotFoundError` is still raised in that case.
    """
    try:
        purged = purge_responses(db, survey_id)
        survey = db.get(Survey, survey_id)
        if survey is None:
            db.commit()
            if purged:
                logger.warning("Purged %d orphaned response(s) of missing survey %s", purged, survey_id)
            raise NotFoundError(f"Survey {survey_id} not found")
        title = survey.title
        db.delete(survey)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to delete survey %s: %s", survey_id, e)
        raise InternalError("Could not delete the survey") from e

    logger.info("Survey deleted: %s (%d related response(s) removed)", title, purged)
    return purged
