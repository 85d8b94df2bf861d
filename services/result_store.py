import secrets
import string
import logging
from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError, ConnectionFailure, PyMongoError
from config import get_setting
from models.result import ExamResult, serialize_document
from services import database
from services.errors import ClientInputError, MissingFieldError, StoreError

logger = logging.getLogger(__name__)

SHARE_ID_PREFIX = 'R_'
SHARE_ID_LENGTH = 6
SHARE_ID_ALPHABET = string.digits + string.ascii_uppercase

def generate_share_id():
    """Short public id, e.g. R_K3ZQ8A."""
    return SHARE_ID_PREFIX + ''.join(secrets.choice(SHARE_ID_ALPHABET) for _ in range(SHARE_ID_LENGTH))

def _collection(collection):
    return collection if collection is not None else database.get_results_collection()

def create_result(payload, collection=None, max_attempts=None, id_factory=generate_share_id):
    """Persist an exam result and return its share id.

    A new id is drawn whenever the unique index rejects the insert; after
    ``max_attempts`` collisions the save fails with StoreError.
    """
    missing = ExamResult.missing_fields(payload)
    if missing:
        logger.error(f"Missing fields in result payload: {missing}")
        raise MissingFieldError(missing)
    try:
        payload = ExamResult.validate_payload(payload)
    except ValidationError as e:
        fields = sorted({str(error['loc'][0]) for error in e.errors() if error['loc']})
        logger.error(f"Invalid field types in result payload: {fields}")
        raise ClientInputError(
            'Los datos del resultado tienen un formato inválido.',
            details=f"Campos inválidos: {', '.join(fields)}",
        ) from e

    max_attempts = max_attempts or get_setting('SHARE_ID_MAX_ATTEMPTS')
    try:
        collection = _collection(collection)
        for attempt in range(1, max_attempts + 1):
            result = ExamResult.from_payload(id_factory(), payload)
            try:
                collection.insert_one(result.to_document())
            except DuplicateKeyError:
                logger.warning(f"Share id collision on {result.unique_id} (attempt {attempt}/{max_attempts})")
                continue
            logger.info(f"Exam result saved with share id {result.unique_id}")
            return result.unique_id
    except ConnectionFailure as e:
        logger.error(f"Lost connection to MongoDB while saving result: {str(e)}")
        database.reset_connection()
        raise StoreError(details=str(e)) from e
    except PyMongoError as e:
        logger.error(f"Failed to save exam result: {str(e)}")
        raise StoreError(details=str(e)) from e

    logger.error(f"Could not generate a unique share id after {max_attempts} attempts")
    raise StoreError(details='No se pudo generar un identificador único.')

def find_result(share_id, collection=None):
    """Look up a result by its exact share id. Returns a plain dict or None."""
    try:
        document = _collection(collection).find_one({'uniqueId': share_id})
    except ConnectionFailure as e:
        logger.error(f"Lost connection to MongoDB while fetching {share_id}: {str(e)}")
        database.reset_connection()
        raise StoreError('Error interno del servidor al obtener el resultado.', details=str(e)) from e
    except PyMongoError as e:
        logger.error(f"Failed to fetch result {share_id}: {str(e)}")
        raise StoreError('Error interno del servidor al obtener el resultado.', details=str(e)) from e
    if document is None:
        return None
    return serialize_document(document)
