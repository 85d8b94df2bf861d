import base64
import http.client
import json
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from types import SimpleNamespace

import httplib2
import pytest
from google.auth.credentials import AnonymousCredentials
from google.auth.exceptions import RefreshError, TransportError
from googleapiclient.errors import HttpError

from config import Config
from services import llm_service, ocr_service
from services.errors import ProviderCallError, ProviderFormatError
from tests.conftest import FakeLLMClient, FakeVisionService


class RaisingVision:
    def __init__(self, error):
        self.error = error

    def images(self):
        return self

    def annotate(self, body):
        def execute():
            raise self.error
        return SimpleNamespace(execute=execute)


def test_detect_document_text_returns_full_text():
    service = FakeVisionService(default_text='Texto del apunte')

    assert ocr_service.detect_document_text(b'img', service=service) == 'Texto del apunte'


def test_detect_document_text_without_annotation_is_empty():
    assert ocr_service.detect_document_text(b'img', service=FakeVisionService()) == ''


def test_vision_http_error_is_a_provider_call_error():
    error = HttpError(httplib2.Response({'status': 403}), b'{"error": {"message": "PERMISSION_DENIED"}}')

    with pytest.raises(ProviderCallError) as exc_info:
        ocr_service.detect_document_text(b'img', service=RaisingVision(error))

    assert exc_info.value.provider == 'Cloud Vision'
    assert 'HTTP 403' in exc_info.value.details


@pytest.mark.parametrize('error', [
    RefreshError('invalid_grant: Invalid JWT Signature.'),
    TransportError('Failed to retrieve http://metadata.google.internal'),
    http.client.RemoteDisconnected('Remote end closed connection without response'),
    httplib2.ServerNotFoundError('Unable to find the server at vision.googleapis.com'),
])
def test_vision_auth_and_transport_errors_are_provider_call_errors(error):
    with pytest.raises(ProviderCallError) as exc_info:
        ocr_service.detect_document_text(b'img', service=RaisingVision(error))

    assert exc_info.value.provider == 'Cloud Vision'
    assert type(error).__name__ in exc_info.value.details


class _VisionHandler(BaseHTTPRequestHandler):
    """Answers images:annotate with the decoded image bytes as the text."""

    def do_POST(self):
        body = json.loads(self.rfile.read(int(self.headers['Content-Length'])))
        content = base64.b64decode(body['requests'][0]['image']['content']).decode()
        time.sleep(0.02)
        payload = json.dumps({'responses': [{'fullTextAnnotation': {'text': f'texto de {content}'}}]}).encode()
        self.send_response(200)
        self.send_header('Content-Type', 'application/json; charset=UTF-8')
        self.send_header('Content-Length', str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    def log_message(self, format, *args):
        pass


@pytest.fixture
def local_vision(monkeypatch):
    server = ThreadingHTTPServer(('127.0.0.1', 0), _VisionHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    monkeypatch.setattr(ocr_service, '_credentials', AnonymousCredentials())
    monkeypatch.setattr(Config, 'VISION_API_ENDPOINT', f'http://127.0.0.1:{server.server_address[1]}/')
    yield server
    server.shutdown()
    server.server_close()


def test_each_vision_service_gets_its_own_http(local_vision):
    first = ocr_service.get_vision_service()
    second = ocr_service.get_vision_service()

    assert first._http is not second._http


def test_extract_text_over_real_transport_keeps_order_under_concurrency(local_vision):
    images = [f'pagina-{n}'.encode() for n in range(8)]
    expected = '\n\n'.join(f'texto de pagina-{n}' for n in range(8))

    for _ in range(5):
        assert ocr_service.extract_text(images) == expected


def test_missing_vision_credentials(monkeypatch, tmp_path):
    monkeypatch.setattr(ocr_service, '_credentials', None)
    monkeypatch.setattr(Config, 'VISION_KEY_JSON', None)
    monkeypatch.setattr(Config, 'VISION_KEY_FILE', str(tmp_path / 'missing.json'))

    with pytest.raises(ProviderCallError):
        ocr_service.get_credentials()


def test_invalid_vision_credentials(monkeypatch):
    monkeypatch.setattr(ocr_service, '_credentials', None)
    monkeypatch.setattr(Config, 'VISION_KEY_JSON', '{"type": "service_account"}')

    with pytest.raises(ProviderCallError):
        ocr_service.get_credentials()


def test_generate_json_requests_json_output():
    client = FakeLLMClient(['{"preguntas": []}'])

    raw = llm_service.generate_json('sistema', 'usuario', client=client, model='gemini-test')

    assert raw == '{"preguntas": []}'
    assert client.calls[0]['model'] == 'gemini-test'
    assert client.calls[0]['response_format'] == {'type': 'json_object'}
    assert client.calls[0]['messages'] == [
        {'role': 'system', 'content': 'sistema'},
        {'role': 'user', 'content': 'usuario'},
    ]


def test_generate_json_empty_content_is_a_format_error():
    with pytest.raises(ProviderFormatError):
        llm_service.generate_json('sistema', 'usuario', client=FakeLLMClient(['']))


def test_missing_api_key(monkeypatch):
    monkeypatch.setattr(llm_service, '_client', None)
    monkeypatch.setattr(Config, 'GEMINI_API_KEY', None)

    with pytest.raises(ProviderCallError):
        llm_service.get_client()
