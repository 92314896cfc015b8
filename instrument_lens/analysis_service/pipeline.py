"""
Analysis pipeline: prompt -> model -> extract, with a one-shot reformat fallback.

The fallback has two states. A request starts in "direct"; it moves to
"reformatted" only when no JSON object can be extracted from the first reply.
In that state the model is asked, once, to rewrite its own reply as strict
JSON. There is no third call.
"""

import logging
from typing import Any, Dict, Optional, Sequence

from instrument_lens.config import ServiceConfig
from instrument_lens.analysis_service.errors import (
    ConfigurationError,
    ExtractionError,
    FormatterError,
    UpstreamError,
)
from instrument_lens.analysis_service.extractor import extract_json_object
from instrument_lens.analysis_service.model_client import VisionModelClient
from instrument_lens.analysis_service.prompts import (
    build_analysis_messages,
    build_formatter_messages,
    filenames_list,
    missing_fields,
)
from instrument_lens.analysis_service.validation import ImageInput

DIRECT = "direct"
REFORMATTED = "reformatted"

MISSING_CREDENTIAL_MESSAGE = (
    "Server missing model API credential. Set OPENAI_API_KEY (or GEMINI_API_KEY) in .env."
)


class AnalysisOutcome:
    """Parsed analysis object plus the path that produced it."""

    def __init__(self, analysis: Dict[str, Any], mode: str):
        self.analysis = analysis
        self.mode = mode


class AnalysisPipeline:
    """
    Runs one analysis request end to end.

    Holds no per-request state, so a single instance serves concurrent requests.
    """

    def __init__(self, config: ServiceConfig, client: Optional[VisionModelClient]):
        self.config = config
        self.client = client

    def run(self, images: Sequence[ImageInput]) -> AnalysisOutcome:
        """
        Analyze a validated image batch.

        Returns:
            AnalysisOutcome: The parsed object and "direct" or "reformatted".

        Raises:
            ConfigurationError: No model credential is configured.
            UpstreamError: The analysis call failed.
            FormatterError: The reformat call failed.
            ExtractionError: The reformatted reply still held no JSON object.
        """
        if self.client is None:
            logging.error("Model API credential is not configured on the server.")
            raise ConfigurationError(MISSING_CREDENTIAL_MESSAGE)

        filenames = filenames_list(images)
        logging.info(f"Analyzing {len(images)} images: {filenames}")

        reply = self.client.complete(
            build_analysis_messages(images),
            max_tokens=self.config.analysis_max_tokens,
            model=self.config.analysis_model,
        )

        parsed = extract_json_object(reply)
        if parsed is not None:
            return self._finish(parsed, DIRECT)

        logging.warning(f"No JSON object found in model response; attempting formatter fallback. Raw content: {reply}")
        formatted = self._reformat(filenames, reply)

        parsed = extract_json_object(formatted)
        if parsed is None:
            logging.error(f"Formatter did not return a JSON object: {formatted}")
            raise ExtractionError("Formatter did not return a JSON object", details=formatted)
        return self._finish(parsed, REFORMATTED)

    def _reformat(self, filenames: str, reply: str) -> str:
        messages = build_formatter_messages(filenames, reply, self.config.formatter_schema)
        try:
            return self.client.complete(
                messages,
                max_tokens=self.config.formatter_max_tokens,
                model=self.config.formatter_model,
            )
        except UpstreamError as e:
            raise FormatterError(e.status, e.body)

    def _finish(self, parsed: Dict[str, Any], mode: str) -> AnalysisOutcome:
        if self.config.formatter_schema == "canonical" or mode == DIRECT:
            absent = missing_fields(parsed)
            if absent:
                logging.warning(f"Analysis ({mode}) is missing fields: {', '.join(absent)}")
        logging.info(f"Analysis completed via {mode} path.")
        return AnalysisOutcome(parsed, mode)
