from typing import Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

REQUIRED_OPTION_KEYS = ('a', 'b', 'c', 'd')

class Question(BaseModel):
    """One multiple-choice question as returned by the generation model."""

    # Models sometimes answer "4" as a bare number
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: Union[int, str]
    text: str = Field(..., alias='pregunta', min_length=1)
    type: Optional[str] = Field(None, alias='tipo')
    options: Dict[str, str] = Field(..., alias='opciones')
    correct_option: str = Field(..., alias='respuesta_correcta')

    @field_validator('options')
    @classmethod
    def validate_options(cls, v: Dict[str, str]) -> Dict[str, str]:
        options = {key.strip().lower(): text for key, text in v.items()}
        missing = [key for key in REQUIRED_OPTION_KEYS if not options.get(key)]
        if missing:
            raise ValueError(f"faltan opciones: {', '.join(missing)}")
        return options

    @field_validator('correct_option')
    @classmethod
    def normalize_correct_option(cls, v: str) -> str:
        return v.strip().lower()

    @model_validator(mode='after')
    def validate_correct_option(self) -> 'Question':
        if self.correct_option not in self.options:
            raise ValueError(f"respuesta_correcta '{self.correct_option}' no es una de las opciones")
        return self


class GeneratedExam(BaseModel):
    questions: List[Question] = Field(..., alias='preguntas', min_length=1)

    @model_validator(mode='after')
    def validate_unique_ids(self) -> 'GeneratedExam':
        ids = [str(q.id) for q in self.questions]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise ValueError(f"ids de pregunta repetidos: {', '.join(duplicates)}")
        return self

    def to_dict(self):
        return self.model_dump(by_alias=True, exclude_none=True)
