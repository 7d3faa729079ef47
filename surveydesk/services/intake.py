# surveydesk/services/intake.py
import logging
from typing import Optional, Union

import pydantic
from sqlalchemy.orm import Session

from surveydesk.core.errors import ValidationError
from surveydesk.db.models import Response
from surveydesk.db.models.survey import utcnow
from surveydesk.schemas.response import ResponseSubmission
from surveydesk.services.duplicate_guard import admit
from surveydesk.services.notification import NotificationDispatcher, ResponseSummary
from surveydesk.services.surveys import get_survey

logger = logging.getLogger(__name__)


def coerce_submission(data: Union[ResponseSubmission, dict]) -> ResponseSubmission:
    if isinstance(data, ResponseSubmission):
        return data
    try:
        return ResponseSubmission.model_validate(data)
    except pydantic.ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise ValidationError(f"Invalid submission: {fields}") from e


def submit_response(
    db: Session,
    dispatcher: Optional[NotificationDispatcher],
    data: Union[ResponseSubmission, dict],
) -> Response:
    """Validate and store one submission, then announce it.

    Errors:
        ValidationError: malformed name, phone or answers.
        NotFoundError: the survey does not exist.
        ConflictError: this phone already answered the survey.
    """
    submission = coerce_submission(data)
    survey = get_survey(db, submission.survey_id)

    response = Response(
        survey_id=survey.survey_id,
        name=submission.name,
        phone=submission.phone,
        answers=[{"question_text": a.question_text, "value": a.value} for a in submission.answers],
        submitted_at=utcnow(),
    )
    admit(db, response)
    logger.info("New response saved (survey=%s, user=%s)", survey.survey_id, response.name)

    if dispatcher is not None:
        summary = ResponseSummary(
            survey_id=survey.survey_id,
            survey_title=survey.title,
            response_id=response.response_id,
            name=response.name,
            phone=response.phone,
            answer_count=len(response.answers),
            submitted_at=response.submitted_at,
        )
        try:
            dispatcher.notify(summary)
        except Exception as e:
            logger.error("Could not publish notification for response %s: %s", response.response_id, e)

    return response
