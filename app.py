from flask import Flask, jsonify
from flask_cors import CORS
from datetime import datetime, timezone
from routes.exam import exam_bp
from routes.results import results_bp
from routes.errors import register_error_handlers
from config import Config
import logging
import os
from dotenv import load_dotenv

# Load environment variables from .env file (for local development)
load_dotenv()

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

def create_app(config_object=Config, **overrides):
    app = Flask(__name__)

    # Load configuration
    app.config.from_object(config_object)
    app.config.update(overrides)

    # Configure CORS
    origins = app.config['CORS_ORIGINS']
    CORS(app, origins=origins if origins == '*' else [o.strip() for o in origins.split(',')])

    # Register blueprints
    app.register_blueprint(exam_bp, url_prefix='/api')
    app.register_blueprint(results_bp, url_prefix='/api')
    register_error_handlers(app)

    @app.route('/api/health', methods=['GET'])
    def health_check():
        return jsonify({
            'status': 'OK',
            'timestamp': datetime.now(timezone.utc).isoformat()
        }), 200

    return app

app = create_app()

logger.info("Flask application started")

if __name__ == '__main__':
    port = int(os.environ.get("PORT", 5000))
    app.run(host='0.0.0.0', port=port, debug=False)
