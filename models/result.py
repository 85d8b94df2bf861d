from datetime import datetime, timezone
from typing import Any, Dict, List, Union
from pydantic import AliasChoices, BaseModel, Field, StrictFloat, StrictInt

# Document key -> accepted English alias in request bodies
FIELD_ALIASES = {
    'puntuacion': 'score',
    'respuestas': 'answers',
    'totalPreguntas': 'totalQuestions',
    'examen': 'exam',
}
REQUIRED_FIELDS = tuple(FIELD_ALIASES)

class ResultPayload(BaseModel):
    """Body of a save-result request, checked against the stored document types."""
    puntuacion: Union[StrictInt, StrictFloat] = Field(..., validation_alias=AliasChoices('puntuacion', 'score'))
    respuestas: Dict[str, Any] = Field(..., validation_alias=AliasChoices('respuestas', 'answers'))
    total_preguntas: StrictInt = Field(..., ge=0, validation_alias=AliasChoices('totalPreguntas', 'totalQuestions'))
    examen: List[Any] = Field(..., validation_alias=AliasChoices('examen', 'exam'))

class ExamResult:
    def __init__(self, unique_id, puntuacion, respuestas, total_preguntas, examen, timestamp=None):
        self.unique_id = unique_id
        self.puntuacion = puntuacion
        self.respuestas = respuestas
        self.total_preguntas = total_preguntas
        self.examen = examen
        self.timestamp = timestamp or datetime.now(timezone.utc)

    @staticmethod
    def missing_fields(payload):
        """Names of required fields that are absent or null, under either key."""
        payload = payload or {}
        return [
            field for field, alias in FIELD_ALIASES.items()
            if payload.get(field) is None and payload.get(alias) is None
        ]

    @staticmethod
    def validate_payload(payload):
        """Type-check a request body; raises pydantic.ValidationError."""
        # Nulls are dropped so a null Spanish key does not hide its English alias
        return ResultPayload.model_validate({k: v for k, v in payload.items() if v is not None})

    @classmethod
    def from_payload(cls, unique_id, payload):
        return cls(
            unique_id=unique_id,
            puntuacion=payload.puntuacion,
            respuestas=payload.respuestas,
            total_preguntas=payload.total_preguntas,
            examen=payload.examen,
        )

    def to_document(self):
        return {
            'uniqueId': self.unique_id,
            'timestamp': self.timestamp,
            'puntuacion': self.puntuacion,
            'respuestas': self.respuestas,
            'totalPreguntas': self.total_preguntas,
            'examen': self.examen,
        }

def serialize_document(document):
    """Plain JSON-safe copy of a stored result."""
    result = dict(document)
    if '_id' in result:
        result['_id'] = str(result['_id'])
    timestamp = result.get('timestamp')
    if isinstance(timestamp, datetime):
        result['timestamp'] = timestamp.isoformat()
    return result
