"""
Prompt templates for the analysis and reformat calls.

Messages are built in the chat-completions shape
(`{"role": ..., "content": ...}` with `image_url`/`text` content parts);
the Gemini backend converts them on the way out.
"""

import json
from typing import Any, Dict, List, Sequence

from instrument_lens.analysis_service.validation import ImageInput

# --- SCHEMA DEFINITIONS ---
CONDITION_VALUES = ["Fair", "Good", "Great", "Excellent"]
BLEMISH_MAX_LENGTH = 40
CONDITION_CHOICES = ", ".join(f'"{c}"' for c in CONDITION_VALUES)

ANALYSIS_RESULT_FIELDS = [
    "brand",
    "brandModel",
    "finish",
    "musicalInstrumentCategory",
    "condition",
    "notedBlemishes",
    "metadataSummary",
]

ANALYSIS_RESULT_SCHEMA = f"""{{
  "brand": string,                      // manufacturer name (e.g., "Fender", "Gibson")
  "brandModel": string,                 // exact model or sub-model
  "finish": string | null,              // name of finish or color (e.g., "TV Yellow", "Surf Green")
  "musicalInstrumentCategory": string,  // instrument type (e.g., "Electric Guitar", "Bass")
  "condition": string,                  // {CONDITION_CHOICES}. One word only!
  "notedBlemishes": string[],           // blemishes visible in the images, max {BLEMISH_MAX_LENGTH} characters per item
  "metadataSummary": {{
    "serialNumber": string | null,      // serial number if visible
    "colors": string[] | null,
    "materials": string[] | null,
    "estimatedValue": string | null
  }}
}}"""

ANALYSIS_RESULT_EXAMPLE = {
    "brand": "Gibson",
    "brandModel": "Les Paul Standard",
    "finish": "Heritage Cherry Sunburst",
    "musicalInstrumentCategory": "Electric Guitar",
    "condition": "Great",
    "notedBlemishes": ["Scratch on headstock", "Ding near bridge pickup"],
    "metadataSummary": {
        "serialNumber": "12345678",
        "colors": ["sunburst", "black"],
        "materials": ["mahogany", "maple", "metal"],
        "estimatedValue": "$2,200",
    },
}

# Fallback schema the service originally asked the formatter for.
# Selected with FORMATTER_SCHEMA=legacy.
LEGACY_FORMATTER_SCHEMA = """{
  "aggregateSummary": string,
  "itemsDetected": string[],
  "commonalities": string,
  "recommendation": string,
  "confidence": string,
  "metadataSummary": {
    "colors": string[] | null,
    "materials": string[] | null,
    "brands": string[] | null,
    "estimatedValueRange": string | null
  }
}"""

FORMATTER_SCHEMAS = {
    "canonical": ANALYSIS_RESULT_SCHEMA,
    "legacy": LEGACY_FORMATTER_SCHEMA,
}

# --- PROMPTS ---
ANALYSIS_PROMPT = """You will be given {count} images (filenames, in order): {filenames}.

Analyze the IMAGES AS A GROUP (not individually): they all show the same instrument.
Return EXACTLY one JSON OBJECT (not an array) as your entire response, using the schema below.
Use null for unknown values where the schema allows it. Use [] when no blemishes are visible.

{schema}

Example (single object):
{example}

DO NOT include any surrounding text, explanations, or markdown code fences.
Return ONLY this single JSON object."""

FORMATTER_SYSTEM_PROMPT = (
    "You are a strict JSON formatter. Convert the provided human-readable analysis "
    "into a single JSON object matching the requested schema. Return ONLY the JSON object, no text."
)

FORMATTER_USER_PROMPT = """Filenames (in order): {filenames}

Analysis:
{analysis}

Convert the analysis into this single JSON object schema (use null for unknowns):
{schema}
Return ONLY the JSON object."""


def filenames_list(images: Sequence[ImageInput]) -> str:
    """Comma-separated filenames in upload order."""
    return ", ".join(image.filename or f"image-{i}" for i, image in enumerate(images, start=1))


def build_analysis_messages(images: Sequence[ImageInput]) -> List[Dict[str, Any]]:
    """
    Build the single multi-part user message for the analysis call.

    One `image_url` part per image, in order, followed by one `text` part with
    the instructions.
    """
    content: List[Dict[str, Any]] = [
        {"type": "image_url", "image_url": {"url": image.content}} for image in images
    ]
    content.append({
        "type": "text",
        "text": ANALYSIS_PROMPT.format(
            count=len(images),
            filenames=filenames_list(images),
            schema=ANALYSIS_RESULT_SCHEMA,
            example=json.dumps(ANALYSIS_RESULT_EXAMPLE),
        ),
    })
    return [{"role": "user", "content": content}]


def build_formatter_messages(filenames: str, raw_reply: str, schema: str = "canonical") -> List[Dict[str, Any]]:
    """
    Build the messages for the one-shot reformat call.

    Args:
        filenames (str): Comma-separated filenames of the original request.
        raw_reply (str): Full text of the first model reply.
        schema (str): Key into FORMATTER_SCHEMAS.
    """
    return [
        {"role": "system", "content": FORMATTER_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": FORMATTER_USER_PROMPT.format(
                filenames=filenames,
                analysis=raw_reply,
                schema=FORMATTER_SCHEMAS[schema],
            ),
        },
    ]


def missing_fields(result: Dict[str, Any]) -> List[str]:
    """AnalysisResult fields absent from `result`, in schema order."""
    return [field for field in ANALYSIS_RESULT_FIELDS if field not in result]
