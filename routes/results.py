from flask import Blueprint, request, jsonify
from services.errors import ClientInputError, NotFoundError
from services.result_store import create_result, find_result
import logging

results_bp = Blueprint('results', __name__)

logger = logging.getLogger(__name__)

@results_bp.route('/guardar_resultado', methods=['POST'])
def save_result():
    logger.info("Received request to save exam result")
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        logger.error("Save result request without a JSON object body")
        raise ClientInputError('El cuerpo de la petición debe ser un objeto JSON.')

    share_id = create_result(data)
    return jsonify({'success': True, 'shareId': share_id}), 201

@results_bp.route('/obtener_resultado', methods=['GET'])
def get_result():
    share_id = request.args.get('shareId', '').strip()
    if not share_id:
        logger.error("Get result request without shareId")
        raise ClientInputError('Falta el parámetro shareId.')

    logger.info(f"Received request for result {share_id}")
    resultado = find_result(share_id)
    if resultado is None:
        raise NotFoundError(details=f"shareId: {share_id}")
    return jsonify({'success': True, 'resultado': resultado}), 200
