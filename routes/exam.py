from flask import Blueprint, request, jsonify, current_app
from services import temp_files
from services.errors import ClientInputError, NoMaterialError
from services.exam_generator import ExamRequest, generate_exam, get_strategy
import logging

exam_bp = Blueprint('exam', __name__)

logger = logging.getLogger(__name__)

@exam_bp.route('/generar_examen', methods=['POST'])
def generate_exam_route():
    config = current_app.config
    logger.info(f"Received exam generation request with files: {list(request.files.keys())}")

    uploads = [f for f in request.files.getlist(config['UPLOAD_FIELD']) if f and f.filename]
    if not uploads:
        logger.error("No file provided under the upload field")
        raise NoMaterialError()
    if len(uploads) > config['MAX_FILES']:
        raise ClientInputError(f"Se permiten como máximo {config['MAX_FILES']} archivos por examen.")

    exam_type = request.form.get('exam_type')
    strategy = get_strategy(config['EXAM_MODE'])

    with temp_files.stored_artifacts(uploads, upload_dir=config['UPLOAD_DIR'], max_size=config['MAX_FILE_SIZE']) as handles:
        exam_request = ExamRequest(handles, exam_type)
        exam = generate_exam(exam_request, strategy=strategy)

    return jsonify({
        'message': 'Examen generado exitosamente',
        'tipo_solicitado': exam_request.exam_type,
        'examen': exam.to_dict(),
    }), 200
