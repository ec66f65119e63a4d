# services/api/core/vision_extract.py
from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Optional, Tuple

from openai import OpenAI, OpenAIError

from core.errors import ExtractionError, VisionNotConfiguredError
from models import RecognitionSettings
from settings import Settings, get_settings

logger = logging.getLogger(__name__)

_DATA_URL_RE = re.compile(r"^data:(?P<mime>image/[\w.+-]+);base64,", re.IGNORECASE)

SYSTEM_PROMPT = (
    "You are an expert at recognizing multiple-choice test answers from images. "
    "Analyze the provided image and extract all visible multiple-choice answers. "
    "{instructions}"
    'Return answers in JSON format as {{"answers": {{"1": "A", "2": "B"}}, "confidence": 0.95}}. '
    'The "answers" object maps question numbers to selected answers. '
    'Include a "confidence" score between 0 and 1 indicating your certainty in the extraction. '
    "Only include answers that are clearly marked or selected in the image."
)

USER_PROMPT = (
    "Extract all multiple-choice answers from this test sheet. "
    "Return ONLY the question numbers and corresponding selected answers in JSON format."
)


def _build_client(settings: Settings) -> OpenAI:
    if not settings.openai_api_key:
        raise VisionNotConfiguredError(
            "Vision model is not configured. Set OPENAI_API_KEY in services/api/.env"
        )
    return OpenAI(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url or None,
        timeout=settings.openai_timeout_seconds,
    )


def to_image_url(image_data: str) -> str:
    """Accept either a data URL or bare base64 and return a data URL."""
    data = (image_data or "").strip()
    if _DATA_URL_RE.match(data):
        return data
    return f"data:image/jpeg;base64,{data}"


def build_messages(image_data: str, recognition: RecognitionSettings) -> list:
    instructions = recognition.answer_recognition_instructions.strip()
    system = SYSTEM_PROMPT.format(
        instructions=f"Special instructions for recognition: {instructions} " if instructions else ""
    )
    # enhanced recognition asks for the full-resolution image tiles
    detail = "high" if recognition.enhanced_recognition else "auto"
    return [
        {"role": "system", "content": system},
        {
            "role": "user",
            "content": [
                {"type": "text", "text": USER_PROMPT},
                {"type": "image_url", "image_url": {"url": to_image_url(image_data), "detail": detail}},
            ],
        },
    ]


def parse_extraction(content: Optional[str]) -> Tuple[Dict[str, str], float]:
    """
    Parse the model's JSON reply.

    Answer keys and values are stringified and trimmed; null answers are
    dropped. Confidence is clamped into [0, 1]; a missing or non-numeric
    confidence becomes 0.

    Raises:
        ExtractionError: empty reply, invalid JSON, or "answers" not an object
    """
    if not content:
        raise ExtractionError("Empty response from vision model")
    try:
        payload = json.loads(content)
    except ValueError as e:
        raise ExtractionError(f"Vision model returned invalid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise ExtractionError("Vision model reply is not a JSON object")
    raw_answers = payload.get("answers", {})
    if not isinstance(raw_answers, dict):
        raise ExtractionError('Vision model reply has no "answers" object')

    answers: Dict[str, str] = {}
    for k, v in raw_answers.items():
        if v is None:
            continue
        key = str(k).strip()
        if key:
            answers[key] = str(v).strip()

    confidence = _clamp_confidence(payload.get("confidence"))
    return answers, confidence


def _clamp_confidence(raw: Any) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return 0.0
    if value != value:  # NaN
        return 0.0
    return max(0.0, min(1.0, value))


def is_low_confidence(confidence: Optional[float], threshold_pct: int) -> bool:
    """threshold_pct is 0-100, confidence is 0-1."""
    if confidence is None:
        return True
    return confidence < threshold_pct / 100


def extract_answers_from_image(
    image_data: str,
    recognition: RecognitionSettings,
    settings: Optional[Settings] = None,
    page_id: Optional[int] = None,
) -> Tuple[Dict[str, str], float]:
    """
    Ask the vision model which answers are marked on an answer-sheet photo.

    Args:
        image_data: data URL or bare base64 JPEG/PNG
        recognition: user-tunable recognition options
        settings: app settings (model, key, timeout); defaults to get_settings()
        page_id: only used for log/error context

    Returns:
        (answers keyed by question number as string, confidence in [0, 1])

    Raises:
        VisionNotConfiguredError: no API key
        ExtractionError: API failure or unusable reply
    """
    settings = settings or get_settings()
    client = _build_client(settings)

    logger.info(f"[vision] Extracting answers for page {page_id} with {settings.openai_model}")
    try:
        response = client.chat.completions.create(
            model=settings.openai_model,
            messages=build_messages(image_data, recognition),
            response_format={"type": "json_object"},
            max_tokens=settings.openai_max_tokens,
            temperature=recognition.temperature,
            top_p=recognition.top_p,
        )
    except OpenAIError as e:
        logger.error(f"[vision] Request failed for page {page_id}: {e}")
        raise ExtractionError(f"Failed to extract answers from image: {e}", page_id=page_id) from e

    if not response.choices:
        raise ExtractionError("Vision model returned no choices", page_id=page_id)

    try:
        answers, confidence = parse_extraction(response.choices[0].message.content)
    except ExtractionError as e:
        e.page_id = page_id
        raise

    logger.info(f"[vision] Page {page_id}: {len(answers)} answers, confidence={confidence:.2f}")
    return answers, confidence
