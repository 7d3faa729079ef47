# surveydesk/schemas/survey.py
from datetime import datetime
from typing import List
from pydantic import BaseModel, ConfigDict, Field, model_validator
from surveydesk.db.models import QuestionKind


class QuestionIn(BaseModel):
    text: str = Field(min_length=1)
    kind: QuestionKind = Field(alias="type")
    options: List[str] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def _options_only_for_choices(self):
        if self.kind in (QuestionKind.choice, QuestionKind.dropdown):
            if not self.options:
                raise ValueError(f"{self.kind.value} question needs options")
        else:
            self.options = []
        return self


class SurveyIn(BaseModel):
    title: str = Field(min_length=1)
    description: str | None = None
    questions: List[QuestionIn] = Field(default_factory=list)


class QuestionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    text: str
    kind: QuestionKind
    options: List[str]


class SurveyOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    survey_id: str
    title: str
    description: str | None = None
    created_at: datetime
    questions: List[QuestionOut]


class SurveyListItem(BaseModel):
    """Survey without questions, for admin listings"""
    model_config = ConfigDict(from_attributes=True)

    survey_id: str
    title: str
    description: str | None = None
    created_at: datetime


class SurveyDeleted(BaseModel):
    survey_id: str
    deleted_responses: int


class DeliveryOut(BaseModel):
    survey_id: str
    filename: str
    response_count: int
    message: str = "Report delivered"
