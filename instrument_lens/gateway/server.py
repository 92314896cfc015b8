"""
API gateway: wires configuration, the model client and the analysis blueprint.
This is the local entrypoint for development.
"""

import logging
from typing import Optional

from flask import Flask, jsonify
from flask_cors import CORS

from instrument_lens.config import ServiceConfig
from instrument_lens.analysis_service.model_client import VisionModelClient, build_vision_client
from instrument_lens.analysis_service.pipeline import AnalysisPipeline
from instrument_lens.analysis_service.routes import analysis_bp

# Basic console logging during API requests
logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(asctime)s - %(message)s")


def create_app(config: Optional[ServiceConfig] = None, vision_client: Optional[VisionModelClient] = None) -> Flask:
    """
    Application factory for creating the Flask app.

    Args:
        config (ServiceConfig, optional): Service settings. Read from the
            environment when omitted.
        vision_client (VisionModelClient, optional): Model client to use
            instead of the one built from `config`.

    Returns:
        Flask: The configured Flask application.
    """
    if config is None:
        config = ServiceConfig.from_env()
    if vision_client is None:
        vision_client = build_vision_client(config)

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = config.max_content_length_mb * 1024 * 1024

    CORS(app, resources={
        r"/*": {
            "origins": list(config.cors_origins),
            "methods": ["GET", "POST", "OPTIONS"],
            "allow_headers": ["Content-Type"],
        }
    })

    app.extensions["service_config"] = config
    app.extensions["analysis_pipeline"] = AnalysisPipeline(config, vision_client)

    # --- REGISTER BLUEPRINTS ---
    # The web client posts to /api/analyze; /analyze is the bare service path.
    app.register_blueprint(analysis_bp)
    app.register_blueprint(analysis_bp, url_prefix="/api", name="analysis_api")
    logging.info("Analysis blueprint registered.")

    # --- BASIC HEALTH CHECKPOINTS ---
    @app.route("/")
    def ping():
        """
        Root URL for simple 'online' check.
        """
        return jsonify({"status": "gateway_ok"}), 200

    @app.route("/health")
    def health():
        """
        Health check endpoint. Reports whether a model credential is configured.
        """
        return jsonify({
            "ok": True,
            "hasCredential": vision_client is not None,
            "provider": vision_client.provider if vision_client is not None else None,
        }), 200

    # --- ERROR HANDLERS ---
    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(413)
    def payload_too_large(error):
        return jsonify({
            "error": f"Request body exceeds {config.max_content_length_mb} MB limit"
        }), 413

    return app


if __name__ == "__main__":
    service_config = ServiceConfig.from_env()
    app = create_app(service_config)
    logging.info(f"Proxy server listening on http://localhost:{service_config.port}")
    app.run(host="0.0.0.0", port=service_config.port, debug=True)
