from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from mobycomps.core.utils.text_utils import strip_text
from mobycomps.domain.competitions.models import CompetitionStatus


class CategoryCreateDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    name: str = Field(min_length=2, max_length=100)
    slug: str | None = Field(default=None, min_length=2, max_length=100, pattern=r"^[a-z0-9\-]+$")

    _strip_name = field_validator("name", mode="before")(strip_text)


class CategoryReadDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str


class CompetitionCreateDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    title: str = Field(min_length=3, max_length=200)
    description: str = Field(min_length=1)
    image_url: str | None = None
    category_id: int | None = Field(default=None, gt=0)
    ticket_price: int = Field(ge=0, description="Price in minor units")
    cash_alternative: int | None = Field(default=None, ge=0)
    max_tickets: int = Field(ge=1, le=100_000)
    draw_date: datetime
    quiz_question: str | None = None
    quiz_answers: list[str] = Field(default_factory=list)
    quiz_correct_answer: str | None = None
    is_featured: bool = False

    _strip_title = field_validator("title", mode="before")(strip_text)
    _strip_question = field_validator("quiz_question", mode="before")(strip_text)

    @model_validator(mode="after")
    def _check_quiz(self):
        if self.quiz_question and not self.quiz_correct_answer:
            raise ValueError("Quiz question requires a correct answer")
        if self.quiz_answers and self.quiz_correct_answer not in self.quiz_answers:
            raise ValueError("Correct answer must be one of the quiz answers")
        return self


class CompetitionUpdateDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    title: str | None = Field(default=None, min_length=3, max_length=200)
    description: str | None = Field(default=None, min_length=1)
    image_url: str | None = None
    category_id: int | None = Field(default=None, gt=0)
    ticket_price: int | None = Field(default=None, ge=0)
    cash_alternative: int | None = Field(default=None, ge=0)
    max_tickets: int | None = Field(default=None, ge=1, le=100_000)
    draw_date: datetime | None = None
    quiz_question: str | None = None
    quiz_answers: list[str] | None = None
    quiz_correct_answer: str | None = None
    is_featured: bool | None = None

    _strip_title = field_validator("title", mode="before")(strip_text)


class CompetitionStatusDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    status: CompetitionStatus


class CompetitionReadDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    image_url: str | None
    category: CategoryReadDTO | None = None
    ticket_price: int
    cash_alternative: int | None
    max_tickets: int
    tickets_sold: int
    draw_date: datetime
    quiz_question: str | None
    quiz_answers: list[str]
    is_featured: bool
    status: CompetitionStatus


class CompetitionAdminReadDTO(CompetitionReadDTO):
    quiz_correct_answer: str | None
    created_at: datetime
    updated_at: datetime


class PublicCompetitionsQueryDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1, le=100)
    featured: bool | None = None
    category: str | None = Field(default=None, max_length=100)
    search: str | None = Field(default=None, max_length=100)


class AdminCompetitionsQueryDTO(PublicCompetitionsQueryDTO):
    status: CompetitionStatus | None = None


class QuizAnswerDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    answer: str = Field(min_length=1, max_length=200)


class QuizResultDTO(BaseModel):
    correct: bool
