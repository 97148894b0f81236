# schemas.py
"""Request/response schemas for exams, questions and submissions."""

from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from codec import clean_literal


class MatchingPair(BaseModel):
    """One canonical left/right relationship of a matching question."""
    left: str = Field(min_length=1)
    right: str = Field(min_length=1)


class _QuestionBase(BaseModel):
    text: str = Field(min_length=1)
    points: int = Field(default=1, ge=1)
    order: int = Field(ge=1)


class MultipleChoiceIn(_QuestionBase):
    type: Literal["multiple_choice"] = "multiple_choice"
    options: List[str] = Field(min_length=2)
    correct_answer: str

    @field_validator("options")
    @classmethod
    def options_not_blank(cls, v: List[str]) -> List[str]:
        cleaned = [clean_literal(o) for o in v]
        if not all(cleaned):
            raise ValueError("options must not be blank")
        return cleaned

    @model_validator(mode="after")
    def answer_is_an_option(self):
        self.correct_answer = clean_literal(self.correct_answer)
        if self.correct_answer not in self.options:
            raise ValueError("correct_answer must be one of the options")
        return self

    def storage_payload(self):
        return self.options, self.correct_answer


class ShortAnswerIn(_QuestionBase):
    type: Literal["short_answer"] = "short_answer"
    correct_answer: Union[str, List[str]]

    @field_validator("correct_answer")
    @classmethod
    def has_acceptable_answer(cls, v):
        if isinstance(v, str):
            v = clean_literal(v)
            if not v:
                raise ValueError("correct_answer must not be blank")
            return v
        accepted = [clean_literal(a) for a in v if clean_literal(a)]
        if not accepted:
            raise ValueError("at least one acceptable answer is required")
        return accepted

    def storage_payload(self):
        return None, self.correct_answer


class MatchingIn(_QuestionBase):
    type: Literal["matching"] = "matching"
    correct_answer: List[MatchingPair] = Field(min_length=1)

    @field_validator("correct_answer")
    @classmethod
    def unique_lefts(cls, v: List[MatchingPair]) -> List[MatchingPair]:
        lefts = [clean_literal(p.left) for p in v]
        if len(set(lefts)) != len(lefts):
            raise ValueError("left items must be unique")
        return v

    def storage_payload(self):
        pairs = [{"left": clean_literal(p.left), "right": clean_literal(p.right)} for p in self.correct_answer]
        return pairs, pairs


QuestionIn = Annotated[
    Union[MultipleChoiceIn, ShortAnswerIn, MatchingIn],
    Field(discriminator="type"),
]


class ExamIn(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    duration: int = Field(ge=1)
    is_published: bool = False
    questions: List[QuestionIn] = Field(default_factory=list)

    @field_validator("questions")
    @classmethod
    def unique_orders(cls, v):
        orders = [q.order for q in v]
        if len(set(orders)) != len(orders):
            raise ValueError("question order must be unique within an exam")
        return v


class SubmittedAnswer(BaseModel):
    question_id: int
    # str | {left: right} | None; anything else is graded as incorrect
    user_answer: Any = None


class SubmissionIn(BaseModel):
    answers: List[SubmittedAnswer] = Field(default_factory=list)


class SubmissionResult(BaseModel):
    attempt_id: int
    total_score: int
    total_questions: int
