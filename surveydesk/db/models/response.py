# surveydesk/db/models/response.py
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, DateTime, JSON, UniqueConstraint
from surveydesk.db import Base
from surveydesk.db.models.survey import utcnow
import uuid

UNIQUE_SUBMITTER = "uq_responses_survey_phone"


class Response(Base):
    """One respondent's answers to a survey.

    `survey_id` is a plain reference without a foreign key: survey deletion
    purges responses explicitly. `answers` keeps the submitted order as a list
    of `{"question_text": ..., "value": ...}` documents.
    """
    __tablename__ = "responses"
    __table_args__ = (UniqueConstraint("survey_id", "phone", name=UNIQUE_SUBMITTER),)

    response_id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    survey_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    phone: Mapped[str] = mapped_column(String, nullable=False, index=True)
    answers: Mapped[list[dict]] = mapped_column(JSON, default=list, nullable=False)
    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
