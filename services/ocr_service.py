import os
import json
import base64
import logging
import http.client
from concurrent.futures import ThreadPoolExecutor
import httplib2
import google_auth_httplib2
from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from config import get_setting
from services.errors import ProviderCallError

logger = logging.getLogger(__name__)

SCOPES = ['https://www.googleapis.com/auth/cloud-vision']
PROVIDER = 'Cloud Vision'
_MAX_WORKERS = 4

# Credentials are thread-safe and cached; httplib2 connections are not, so
# every service built below gets its own Http.
_credentials = None

def get_credentials():
    global _credentials
    if _credentials is not None:
        return _credentials
    # Service account JSON from the environment, or a key file for local runs
    service_account_json = get_setting('VISION_KEY_JSON')
    key_file = get_setting('VISION_KEY_FILE')
    if not service_account_json and not os.path.exists(key_file):
        logger.error("Cloud Vision credentials are not configured")
        raise ProviderCallError(PROVIDER, details='Credenciales de Vision no configuradas.')
    try:
        if service_account_json:
            _credentials = Credentials.from_service_account_info(
                json.loads(service_account_json), scopes=SCOPES
            )
        else:
            _credentials = Credentials.from_service_account_file(key_file, scopes=SCOPES)
        return _credentials
    except (ValueError, OSError) as e:
        logger.error(f"Failed to load Google Cloud Vision credentials: {str(e)}")
        raise ProviderCallError(PROVIDER, details='Credenciales de Vision inválidas.') from e

def get_vision_service(credentials=None, timeout=None, api_endpoint=None):
    """Build a Vision client with its own HTTP connection. Do not share it across threads."""
    credentials = credentials or get_credentials()
    timeout = timeout or get_setting('PROVIDER_TIMEOUT')
    api_endpoint = api_endpoint or get_setting('VISION_API_ENDPOINT')
    http = google_auth_httplib2.AuthorizedHttp(credentials, http=httplib2.Http(timeout=timeout))
    client_options = {'api_endpoint': api_endpoint} if api_endpoint else None
    return build('vision', 'v1', http=http, cache_discovery=False, client_options=client_options)

def detect_document_text(image_bytes, service=None):
    """Run DOCUMENT_TEXT_DETECTION on one image and return the full text ('' when none)."""
    service = service or get_vision_service()
    body = {
        'requests': [{
            'image': {'content': base64.b64encode(image_bytes).decode('ascii')},
            'features': [{'type': 'DOCUMENT_TEXT_DETECTION'}],
        }]
    }
    try:
        response = service.images().annotate(body=body).execute()
    except HttpError as e:
        logger.error(f"Cloud Vision request failed: {str(e)}")
        raise ProviderCallError(PROVIDER, details=f"HTTP {e.resp.status}: {e.reason}") from e
    except GoogleAuthError as e:
        logger.error(f"Cloud Vision authentication failed: {type(e).__name__}: {str(e)}")
        raise ProviderCallError(PROVIDER, details=f"Error de autenticación con Vision: {type(e).__name__}") from e
    except (httplib2.HttpLib2Error, http.client.HTTPException, OSError) as e:
        logger.error(f"Cloud Vision request failed: {type(e).__name__}: {str(e)}")
        raise ProviderCallError(PROVIDER, details=f"{type(e).__name__}: {str(e)}") from e

    annotation = (response.get('responses') or [{}])[0]
    if 'error' in annotation:
        error = annotation['error']
        logger.error(f"Cloud Vision returned an error: {error}")
        raise ProviderCallError(PROVIDER, details=error.get('message', 'Error desconocido de Vision.'))
    return annotation.get('fullTextAnnotation', {}).get('text', '')

def extract_text(images, service=None):
    """OCR several images concurrently; texts are joined in input order.

    Without an explicit ``service`` each image gets a freshly built client,
    so worker threads never share an HTTP connection.
    """
    if service is not None:
        make_service = lambda: service
    else:
        # Settings are read here because worker threads have no app context
        credentials = get_credentials()
        timeout = get_setting('PROVIDER_TIMEOUT')
        api_endpoint = get_setting('VISION_API_ENDPOINT')
        make_service = lambda: get_vision_service(credentials, timeout, api_endpoint)

    if len(images) == 1:
        return detect_document_text(images[0], make_service())
    with ThreadPoolExecutor(max_workers=min(_MAX_WORKERS, len(images))) as executor:
        texts = list(executor.map(lambda content: detect_document_text(content, make_service()), images))
    logger.info(f"OCR finished for {len(images)} images")
    return '\n\n'.join(texts)
