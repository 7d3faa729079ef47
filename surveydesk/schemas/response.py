# surveydesk/schemas/response.py
import re
from datetime import datetime
from typing import List
from pydantic import BaseModel, ConfigDict, Field, field_validator

_PHONE_SEPARATORS = re.compile(r"[\s\-.()]")
_PHONE_RE = re.compile(r"^\+?\d{6,15}$")
# tab, newline and carriage return are allowed
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")


def normalize_phone(value: str) -> str:
    """Strip formatting so `010-1234-5678` and `01012345678` are one identity."""
    return _PHONE_SEPARATORS.sub("", value.strip())


def _reject_control_chars(field: str, v: str) -> str:
    if _CONTROL_CHARS.search(v):
        raise ValueError(f"{field} must not contain control characters")
    return v


class AnswerIn(BaseModel):
    # rating answers often arrive as JSON numbers
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    question_text: str = Field(alias="questionText", min_length=1, max_length=1000)
    value: str = Field(min_length=1, max_length=5000)

    @field_validator("question_text")
    @classmethod
    def _text_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("questionText must not be blank")
        return _reject_control_chars("questionText", v)

    @field_validator("value")
    @classmethod
    def _value_printable(cls, v: str) -> str:
        return _reject_control_chars("value", v)


class ResponseSubmission(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    survey_id: str = Field(alias="surveyId", min_length=1)
    name: str = Field(min_length=1, max_length=200)
    phone: str = Field(min_length=1, max_length=32)
    answers: List[AnswerIn] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _name_printable(cls, v: str) -> str:
        return _reject_control_chars("name", v)

    @field_validator("phone")
    @classmethod
    def _phone_format(cls, v: str) -> str:
        phone = normalize_phone(v)
        if not _PHONE_RE.match(phone):
            raise ValueError("phone must contain 6 to 15 digits")
        return phone


class ResponseAccepted(BaseModel):
    response_id: str
    survey_id: str
    submitted_at: datetime
    message: str = "Survey response submitted"
