"""One response per (survey, phone).

The unique constraint on `responses(survey_id, phone)` is the only authority:
the insert either commits or the store reports a constraint violation, which
is what "duplicate" means here. There is no lookup before the insert.
"""
# surveydesk/services/duplicate_guard.py
import logging
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from surveydesk.core.errors import ConflictError, InternalError
from surveydesk.db.models import Response
from surveydesk.db.models.response import UNIQUE_SUBMITTER

logger = logging.getLogger(__name__)

# Without `diag` the message is all there is: SQLite lists the columns,
# other drivers quote the constraint name.
_MESSAGE_MARKERS = (
    "UNIQUE constraint failed: responses.survey_id, responses.phone",
    f"\"{UNIQUE_SUBMITTER}\"",
)


def is_duplicate_violation(exc: IntegrityError) -> bool:
    # psycopg2 exposes the violated constraint on `diag`
    diag = getattr(exc.orig, "diag", None)
    constraint = getattr(diag, "constraint_name", None)
    if constraint is not None:
        return constraint == UNIQUE_SUBMITTER
    message = str(exc.orig) if exc.orig is not None else str(exc)
    return any(marker in message for marker in _MESSAGE_MARKERS)


def admit(db: Session, response: Response) -> Response:
    """Insert and commit `response`, or raise `ConflictError` on a repeat submitter."""
    db.add(response)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if is_duplicate_violation(e):
            logger.warning("Duplicate submission rejected (survey=%s, phone=%s)", response.survey_id, response.phone)
            raise ConflictError() from e
        logger.error("Integrity error while saving response for survey %s: %s", response.survey_id, e)
        raise InternalError("Could not save the response") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Store failure while saving response for survey %s: %s", response.survey_id, e)
        raise InternalError("Could not save the response") from e
    return response
