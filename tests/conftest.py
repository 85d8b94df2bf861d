import copy
import json
from types import SimpleNamespace

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from app import create_app
from services import database, llm_service, ocr_service

VALID_EXAM = {
    "preguntas": [
        {
            "id": 1,
            "pregunta": "¿Qué orgánulo realiza la fotosíntesis?",
            "tipo": "opcion_multiple",
            "opciones": {"a": "Mitocondria", "b": "Cloroplasto", "c": "Ribosoma", "d": "Núcleo"},
            "respuesta_correcta": "b",
        },
        {
            "id": 2,
            "pregunta": "¿Qué gas se libera durante la fotosíntesis?",
            "tipo": "opcion_multiple",
            "opciones": {"a": "Oxígeno", "b": "Nitrógeno", "c": "Helio", "d": "Metano"},
            "respuesta_correcta": "a",
        },
    ]
}


class FakeCollection:
    """In-memory stand-in for the results collection with a unique uniqueId."""

    full_name = 'aisa.resultados'

    def __init__(self):
        self.documents = []
        self.insert_attempts = 0

    def insert_one(self, document):
        self.insert_attempts += 1
        if any(d['uniqueId'] == document['uniqueId'] for d in self.documents):
            raise DuplicateKeyError(f"E11000 duplicate key error: uniqueId {document['uniqueId']}")
        document.setdefault('_id', ObjectId())
        self.documents.append(copy.deepcopy(document))
        return SimpleNamespace(inserted_id=document['_id'])

    def find_one(self, query):
        for document in self.documents:
            if all(document.get(k) == v for k, v in query.items()):
                return copy.deepcopy(document)
        return None


class FakeLLMClient:
    def __init__(self, responses=None):
        self.responses = list(responses or [json.dumps(VALID_EXAM)])
        self.calls = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.calls.append(kwargs)
        content = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(content, Exception):
            raise content
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class FakeVisionService:
    """Mimics ``build('vision', 'v1').images().annotate(body=...).execute()``."""

    def __init__(self, texts_by_content=None, default_text=''):
        self.texts_by_content = texts_by_content or {}
        self.default_text = default_text
        self.requests = []

    def images(self):
        return self

    def annotate(self, body):
        self.requests.append(body)
        content = body['requests'][0]['image']['content']
        text = self.texts_by_content.get(content, self.default_text)
        response = {'responses': [{'fullTextAnnotation': {'text': text}} if text else {}]}
        return SimpleNamespace(execute=lambda: response)


@pytest.fixture
def upload_dir(tmp_path):
    path = tmp_path / 'uploads'
    path.mkdir()
    return path


@pytest.fixture
def app(upload_dir):
    app = create_app(TESTING=True, UPLOAD_DIR=str(upload_dir), EXAM_MODE='ocr')
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def results_collection(monkeypatch):
    collection = FakeCollection()
    monkeypatch.setattr(database, 'get_results_collection', lambda *args, **kwargs: collection)
    return collection


@pytest.fixture
def fake_llm(monkeypatch):
    fake = FakeLLMClient()
    monkeypatch.setattr(llm_service, 'get_client', lambda: fake)
    return fake


@pytest.fixture
def fake_vision(monkeypatch):
    fake = FakeVisionService(default_text='La fotosíntesis ocurre en los cloroplastos y libera oxígeno a la atmósfera.')
    monkeypatch.setattr(ocr_service, 'get_credentials', lambda: object())
    monkeypatch.setattr(ocr_service, 'get_vision_service', lambda *args, **kwargs: fake)
    return fake
