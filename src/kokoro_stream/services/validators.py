"""
Input Validation.

Checks run at the top of every synthesis call, before any text
processing or inference:

    - Text: required, bounded length
    - Speed: finite and positive (warns outside 0.5-2.0)
    - Voice id: non-empty, bounded length

All validators raise InvalidInputError with a ``reason`` detail, e.g.
``TEXT_REQUIRED``, ``TEXT_TOO_LONG``, ``SPEED_NOT_POSITIVE``.
"""
from __future__ import annotations

import math
from typing import Union

from kokoro_stream.core.logging import get_logger, warn
from kokoro_stream.services.errors import InvalidInputError

_LOG = get_logger("kokoro-stream.validators")

MAX_VOICE_ID_LENGTH = 64
SPEED_SOFT_MIN = 0.5
SPEED_SOFT_MAX = 2.0


def validate_text(text: Union[str, bytes, None], max_length: int = 100_000) -> Union[str, bytes]:
    """
    Validate raw text input.

    Bytes are passed through unchanged; UTF-8 decoding happens in the
    normalizer, which reports malformed encodings.

    Raises:
        InvalidInputError: If text is missing, blank or too long.
    """
    if text is None:
        raise InvalidInputError("Text is required", {"reason": "TEXT_REQUIRED"})
    if not isinstance(text, (str, bytes)):
        raise InvalidInputError(
            f"Text must be str or bytes, got {type(text).__name__}",
            {"reason": "TEXT_INVALID_TYPE"},
        )
    if not text.strip():
        raise InvalidInputError("Text is required", {"reason": "TEXT_REQUIRED"})
    if len(text) > max_length:
        raise InvalidInputError(
            f"Text exceeds maximum length ({len(text)} > {max_length})",
            {"reason": "TEXT_TOO_LONG"},
        )
    return text


def validate_speed(speed: Union[int, float]) -> float:
    """
    Validate the speed multiplier.

    Raises:
        InvalidInputError: If speed is not a finite positive number.
    """
    try:
        value = float(speed)
    except (TypeError, ValueError):
        raise InvalidInputError(f"Speed must be a number, got {speed!r}", {"reason": "SPEED_INVALID"})

    if not math.isfinite(value):
        raise InvalidInputError(f"Speed must be finite, got {value}", {"reason": "SPEED_INVALID"})
    if value <= 0:
        raise InvalidInputError(f"Speed must be positive, got {value}", {"reason": "SPEED_NOT_POSITIVE"})

    if not (SPEED_SOFT_MIN <= value <= SPEED_SOFT_MAX):
        warn(_LOG, "speed_out_of_range", speed=value, min=SPEED_SOFT_MIN, max=SPEED_SOFT_MAX)
    return value


def validate_voice_id(voice_id: str, max_length: int = MAX_VOICE_ID_LENGTH) -> str:
    """
    Validate a voice identifier's shape. Whether the voice exists is
    checked by the VoiceStore.

    Raises:
        InvalidInputError: If the id is empty, not a string, or too long.
    """
    if not isinstance(voice_id, str) or not voice_id.strip():
        raise InvalidInputError("Voice id is required", {"reason": "VOICE_REQUIRED"})
    if len(voice_id) > max_length:
        raise InvalidInputError(
            f"Voice id exceeds maximum length ({len(voice_id)} > {max_length})",
            {"reason": "VOICE_TOO_LONG"},
        )
    return voice_id
