from .survey import Survey, Question, QuestionKind
from .response import Response
