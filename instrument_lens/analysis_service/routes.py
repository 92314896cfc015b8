"""
Analysis service route handlers.

Provides:
- POST /analyze: aggregate description of 1-4 instrument images.

The pipeline and model client are created by the gateway and stored on the
app (`app.extensions["analysis_pipeline"]`), so handlers never read the
process environment.
"""

import logging
from typing import Any, Dict, Tuple

from flask import Blueprint, Response, current_app, jsonify, request

from instrument_lens.analysis_service.errors import AnalysisError
from instrument_lens.analysis_service.pipeline import AnalysisPipeline
from instrument_lens.analysis_service.validation import parse_images

analysis_bp = Blueprint("analysis", __name__)


# --- REQUEST LOGGING ---
@analysis_bp.before_request
def before_request() -> None:
    """
    Log method and path of every request to the analysis service.
    Bodies are not logged; they carry image data.
    """
    logging.info(f"[Analysis] Incoming {request.method} {request.path}")


@analysis_bp.after_request
def after_request(response: Response) -> Response:
    """
    Log the response status code for every request.

    Args:
        response (Response): The Flask response object.

    Returns:
        Response: The passed-through response object.
    """
    logging.info(f"[Analysis] Response {response.status}")
    return response


def get_pipeline() -> AnalysisPipeline:
    return current_app.extensions["analysis_pipeline"]


# --- ANALYZE ---
@analysis_bp.route("/analyze", methods=["POST"])
def analyze() -> Tuple[Response, int]:
    """
    Analyze a batch of images as one instrument.

    Expects a JSON body with:
    - images (list): 1-4 objects `{content, filename?}` (`dataUrl` is accepted
      for `content`), or bare image strings.

    Returns:
        200: `{"analysis": {...}}`.
        400: Missing or malformed `images`.
        500: Missing credential, or no JSON object even after reformatting.
        4xx/5xx: Upstream model error, status and body forwarded.
    """
    data: Dict[str, Any] = request.get_json(silent=True) or {}

    try:
        images = parse_images(data)
        outcome = get_pipeline().run(images)
    except AnalysisError as e:
        return jsonify(e.to_envelope()), e.status
    except Exception as e:
        logging.exception(f"Server error while analyzing images: {e}")
        return jsonify({"error": "Unknown error while analyzing images"}), 500

    return jsonify({"analysis": outcome.analysis}), 200
