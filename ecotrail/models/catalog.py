"""Question Catalog models.

The catalog is the read-only list of questions the questionnaire walks
through. It is fetched once from the backend, which uses camelCase field
names; snake_case is accepted as well.
"""

import json
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class Variable(BaseModel):
    """An auxiliary input attached to a possible answer (distance, frequency).

    scale is the largest value the input accepts; None means unbounded.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: int
    label: str | None = None
    scale: float | None = None


class PossibleAnswer(BaseModel):
    """One choice offered by a question."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: int
    name: str | None = None
    variables: tuple[Variable, ...] = ()


class Question(BaseModel):
    """A question with its possible answers."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str
    min_answers_number: int = Field(default=0, ge=0, alias="minAnswersNumber")
    possible_answers: tuple[PossibleAnswer, ...] = Field(
        default=(), alias="possibleAnswers"
    )

    @property
    def answer_ids(self) -> set[int]:
        return {answer.id for answer in self.possible_answers}

    def get_answer(self, answer_id: int) -> PossibleAnswer | None:
        for answer in self.possible_answers:
            if answer.id == answer_id:
                return answer
        return None


class Questionnaire(BaseModel):
    """The ordered list of questions."""

    model_config = ConfigDict(frozen=True)

    questions: tuple[Question, ...] = ()

    def get_question(self, index: int) -> Question | None:
        """Get a question by position, or None if the index is out of range."""
        if 0 <= index < len(self.questions):
            return self.questions[index]
        return None

    def find_variable(self, variable_id: int) -> Variable | None:
        """Find a variable definition anywhere in the catalog."""
        for question in self.questions:
            for answer in question.possible_answers:
                for variable in answer.variables:
                    if variable.id == variable_id:
                        return variable
        return None


def load_questionnaire(path: str | Path) -> Questionnaire:
    """Load a questionnaire from a JSON file.

    Accepts either a bare list of questions or {"questions": [...]}.

    Raises:
        ValueError: If the file is not valid JSON or does not describe questions.
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid questionnaire JSON in {path}: {e}") from e

    if isinstance(data, list):
        data = {"questions": data}

    try:
        return Questionnaire.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid questionnaire in {path}: {e}") from e
