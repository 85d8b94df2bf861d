import logging
import threading
from pymongo import MongoClient, ASCENDING
from config import get_setting
from services.errors import StoreError

logger = logging.getLogger(__name__)

# One client per process, reused by every request
_client = None
_indexed = set()
_lock = threading.Lock()

def get_db(uri=None, db_name=None):
    """Return the application database, connecting on first use."""
    global _client
    if _client is None:
        with _lock:
            if _client is None:
                uri = uri or get_setting('MONGO_URI')
                if not uri:
                    logger.error("MONGO_URI is not configured")
                    raise StoreError('No se pudo conectar a la base de datos.')
                _client = MongoClient(uri, serverSelectionTimeoutMS=int(get_setting('PROVIDER_TIMEOUT') * 1000))
                logger.info("MongoDB client initialized")
    return _client[db_name or get_setting('MONGO_DB_NAME')]

def get_results_collection(collection_name=None, uri=None, db_name=None):
    collection = get_db(uri, db_name)[collection_name or get_setting('RESULTS_COLLECTION')]
    ensure_indexes(collection)
    return collection

def ensure_indexes(collection):
    key = collection.full_name
    if key in _indexed:
        return
    collection.create_index([('uniqueId', ASCENDING)], unique=True, name='uniqueId_unique')
    _indexed.add(key)
    logger.info(f"Ensured unique index on uniqueId for {key}")

def reset_connection():
    """Drop the cached client; the next get_db() call reconnects."""
    global _client
    with _lock:
        if _client is not None:
            try:
                _client.close()
            except Exception as e:
                logger.error(f"Error closing MongoDB client: {str(e)}")
        _client = None
        _indexed.clear()
