from dotenv import load_dotenv
import os
from flask import current_app, has_app_context

# Load environment variables from .env file
load_dotenv()

def _default_upload_dir():
    # Serverless hosts only allow writes under /tmp
    if os.getenv('APP_ENV') == 'production':
        return '/tmp'
    return os.path.join(os.getcwd(), 'temp')

class Config:
    APP_ENV = os.getenv('APP_ENV', 'development')
    CORS_ORIGINS = os.getenv('CORS_ORIGINS', '*')

    MONGO_URI = os.getenv('MONGO_URI') or os.getenv('MONGODB_URI')
    MONGO_DB_NAME = os.getenv('MONGO_DB_NAME', 'aisa')
    RESULTS_COLLECTION = os.getenv('RESULTS_COLLECTION', 'resultados')
    SHARE_ID_MAX_ATTEMPTS = int(os.getenv('SHARE_ID_MAX_ATTEMPTS', 5))

    GEMINI_API_KEY = os.getenv('GEMINI_API_KEY')
    LLM_BASE_URL = os.getenv('LLM_BASE_URL', 'https://generativelanguage.googleapis.com/v1beta/openai/')
    LLM_MODEL = os.getenv('LLM_MODEL', 'gemini-2.5-pro')
    VISION_KEY_JSON = os.getenv('VISION_KEY_JSON')
    VISION_KEY_FILE = os.getenv('VISION_KEY_FILE', 'vision_service_account.json')
    VISION_API_ENDPOINT = os.getenv('VISION_API_ENDPOINT')
    PROVIDER_TIMEOUT = float(os.getenv('PROVIDER_TIMEOUT', 60))

    # 'ocr' extracts text with Cloud Vision first, 'image' sends the uploads to the LLM as is
    EXAM_MODE = os.getenv('EXAM_MODE', 'ocr')
    DEFAULT_EXAM_TYPE = os.getenv('DEFAULT_EXAM_TYPE', '5 preguntas de opción múltiple')
    OCR_MIN_CHARS = int(os.getenv('OCR_MIN_CHARS', 50))

    UPLOAD_DIR = os.getenv('UPLOAD_DIR') or _default_upload_dir()
    UPLOAD_FIELD = 'file'
    MAX_FILE_SIZE = int(os.getenv('MAX_FILE_SIZE', 5 * 1024 * 1024))
    MAX_FILES = int(os.getenv('MAX_FILES', 10))
    MAX_CONTENT_LENGTH = MAX_FILE_SIZE * MAX_FILES + 64 * 1024

def get_setting(name):
    """Value from the running app's config, or from Config outside a request."""
    if has_app_context():
        return current_app.config[name]
    return getattr(Config, name)
