"""
Exam generation pipeline.

Uploaded study material reaches the model in one of two ways, chosen per
deployment through ``EXAM_MODE``:

- ``ocr``: Cloud Vision extracts the text of every upload and the model
  only sees that text (rejected when too little text comes back).
- ``image``: uploads are sent to the model as inline images.

Whatever happens, every artifact handle passed in is released before
``generate_exam`` returns or raises.
"""

import re
import json
import base64
import logging
from pydantic import ValidationError
from config import get_setting
from models.exam import GeneratedExam
from services import llm_service, ocr_service, temp_files
from services.errors import NoMaterialError, OcrInsufficientTextError, ProviderFormatError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "Eres AISA, un asistente de estudio experto en generar exámenes. "
    "Generas exámenes basados exclusivamente en el material de estudio provisto.\n"
    "FORMATO DE SALIDA: responde solo con un objeto JSON, sin Markdown ni explicaciones, "
    "que contenga una lista llamada 'preguntas'. Cada pregunta debe tener: "
    "'id' (número único y correlativo desde 1), 'pregunta', 'tipo' ('opcion_multiple'), "
    "'opciones' (objeto con las claves 'a', 'b', 'c' y 'd') y "
    "'respuesta_correcta' (una de las claves de 'opciones')."
)

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$")


class ExamRequest:
    def __init__(self, materials, exam_type=None):
        self.materials = list(materials or [])
        self.exam_type = (exam_type or '').strip() or get_setting('DEFAULT_EXAM_TYPE')


class OcrTextStrategy:
    name = 'ocr'

    def __init__(self, ocr_service_client=None, min_chars=None):
        self.ocr_service_client = ocr_service_client
        self.min_chars = min_chars if min_chars is not None else get_setting('OCR_MIN_CHARS')

    def build_content(self, request):
        images = [temp_files.read_all(handle) for handle in request.materials]
        study_text = ocr_service.extract_text(images, service=self.ocr_service_client).strip()
        if len(study_text) < self.min_chars:
            logger.warning(f"OCR returned {len(study_text)} characters, below the {self.min_chars} minimum")
            raise OcrInsufficientTextError(len(study_text), self.min_chars)
        logger.info(f"OCR extracted {len(study_text)} characters from {len(images)} file(s)")
        return (
            f"Genera un examen de '{request.exam_type}' basado exclusivamente en el 'MATERIAL DE ESTUDIO' provisto.\n\n"
            f"MATERIAL DE ESTUDIO:\n---\n{study_text}\n---"
        )


class DirectImageStrategy:
    name = 'image'

    def build_content(self, request):
        content = [{
            "type": "text",
            "text": f"Genera un examen de '{request.exam_type}' basado exclusivamente en el material de estudio de las imágenes adjuntas.",
        }]
        for handle in request.materials:
            encoded = base64.b64encode(temp_files.read_all(handle)).decode('ascii')
            content.append({
                "type": "image_url",
                "image_url": {"url": f"data:{handle.media_type};base64,{encoded}"},
            })
        return content


STRATEGIES = {
    OcrTextStrategy.name: OcrTextStrategy,
    DirectImageStrategy.name: DirectImageStrategy,
}

def get_strategy(mode=None):
    mode = (mode or get_setting('EXAM_MODE')).lower()
    if mode not in STRATEGIES:
        raise ValueError(f"Unknown EXAM_MODE '{mode}', expected one of {sorted(STRATEGIES)}")
    return STRATEGIES[mode]()

def clean_json_response(text):
    return _FENCE_RE.sub('', text.strip()).strip()

def parse_exam(raw_text):
    """Parse and validate the model output, raising ProviderFormatError on any mismatch."""
    try:
        data = json.loads(clean_json_response(raw_text))
    except json.JSONDecodeError as e:
        logger.error(f"Model output is not valid JSON: {str(e)}\nRaw output:\n{raw_text}")
        raise ProviderFormatError(details=f"JSON inválido: {e.msg}", raw_text=raw_text) from e

    if isinstance(data, list):
        # Some responses skip the wrapper object
        data = {'preguntas': data}
    try:
        return GeneratedExam.model_validate(data)
    except ValidationError as e:
        logger.error(f"Model output does not match the exam shape: {e}\nRaw output:\n{raw_text}")
        problems = '; '.join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ProviderFormatError(details=problems, raw_text=raw_text) from e

def generate_exam(request, strategy=None, llm_client=None):
    try:
        if not request.materials:
            raise NoMaterialError()
        strategy = strategy or get_strategy()
        logger.info(f"Generating exam '{request.exam_type}' from {len(request.materials)} file(s) in {strategy.name} mode")
        user_content = strategy.build_content(request)
        raw_text = llm_service.generate_json(SYSTEM_PROMPT, user_content, client=llm_client)
        exam = parse_exam(raw_text)
        logger.info(f"Generated exam with {len(exam.questions)} questions")
        return exam
    finally:
        for handle in request.materials:
            temp_files.release(handle)
