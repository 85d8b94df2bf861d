import logging
from openai import OpenAI, APIError
from config import get_setting
from services.errors import ProviderCallError, ProviderFormatError

logger = logging.getLogger(__name__)

PROVIDER = 'Gemini'

_client = None

def get_client():
    """OpenAI-compatible client for the generation model, created once."""
    global _client
    if _client is None:
        if not get_setting('GEMINI_API_KEY'):
            logger.error("GEMINI_API_KEY is not configured")
            raise ProviderCallError(PROVIDER, details='Clave de API del modelo no configurada.')
        _client = OpenAI(
            api_key=get_setting('GEMINI_API_KEY'),
            base_url=get_setting('LLM_BASE_URL'),
            timeout=get_setting('PROVIDER_TIMEOUT'),
            max_retries=0,
        )
        logger.info(f"LLM client initialized for {get_setting('LLM_BASE_URL')}")
    return _client

def generate_json(system_prompt, user_content, client=None, model=None):
    """Ask the model for a JSON object and return its raw text.

    ``user_content`` is either a prompt string or a list of chat content
    parts (text and image_url entries).
    """
    client = client or get_client()
    model = model or get_setting('LLM_MODEL')
    try:
        response = client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content},
            ],
            response_format={"type": "json_object"},
        )
    except APIError as e:
        logger.error(f"{PROVIDER} request failed: {type(e).__name__}: {str(e)}")
        raise ProviderCallError(PROVIDER, details=f"{type(e).__name__}: {e.message}") from e

    if not response.choices or not response.choices[0].message.content:
        logger.error(f"{PROVIDER} returned an empty response")
        raise ProviderFormatError(details='El modelo devolvió una respuesta vacía.')
    return response.choices[0].message.content
