"""Turning a survey and its responses into a table.

`compile_report` is pure: columns come from the survey (three identity
columns, then one per question in survey order), rows follow the order of the
responses given. Answers are matched to questions by exact question text.
"""
# surveydesk/services/report.py
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Sequence

from surveydesk.db.models import Survey, Response

NO_ANSWER = "(no answer)"
IDENTITY_COLUMNS = ("Submitted at", "Name", "Phone")


@dataclass
class TabularReport:
    title: str
    header: List[str]
    rows: List[List[Any]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.rows


def _answer_lookup(answers: Iterable[dict]) -> dict[str, str]:
    # first answer for a question text wins; later repeats are ignored
    lookup: dict[str, str] = {}
    for answer in answers or []:
        text = answer.get("question_text")
        if text is not None and text not in lookup:
            lookup[text] = answer.get("value")
    return lookup


def compile_report(survey: Survey, responses: Sequence[Response]) -> TabularReport:
    question_texts = [q.text for q in survey.questions]
    report = TabularReport(title=survey.title, header=[*IDENTITY_COLUMNS, *question_texts])

    for response in responses:
        lookup = _answer_lookup(response.answers)
        cells = [lookup.get(text, NO_ANSWER) for text in question_texts]
        report.rows.append([response.submitted_at, response.name, response.phone, *cells])

    return report
