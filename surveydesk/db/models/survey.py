# surveydesk/db/models/survey.py
from datetime import datetime, timezone
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, Text, Integer, DateTime, Enum, ForeignKey, JSON
from surveydesk.db import Base
import enum
import uuid


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuestionKind(str, enum.Enum):
    text = "text"
    choice = "choice"
    rating = "rating"
    dropdown = "dropdown"


class Survey(Base):
    __tablename__ = "surveys"

    survey_id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    questions = relationship(
        "Question",
        back_populates="survey",
        cascade="all, delete-orphan",
        order_by="Question.position",
        lazy="selectin",
    )


class Question(Base):
    __tablename__ = "questions"

    question_id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    survey_id: Mapped[str] = mapped_column(String, ForeignKey("surveys.survey_id"), nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    kind: Mapped[QuestionKind] = mapped_column(Enum(QuestionKind), nullable=False)
    options: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)

    survey = relationship("Survey", back_populates="questions")
