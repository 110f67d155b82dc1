"""
Error Codes and Exceptions.

Every failure surfaced by the engine is a TTSError subclass carrying a
stable ``code`` from ErrorCode, so callers can branch without parsing
messages:

    try:
        engine.synthesize(text, voice_id="xx_nobody")
    except UnknownVoiceError as e:
        print(e.to_dict())
        # {"ok": False, "error": "UNKNOWN_VOICE", "message": "...", "details": {...}}
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class ErrorCode:
    """Machine-readable error codes."""
    INVALID_INPUT = "INVALID_INPUT"                 # Bad text, speed or voice id
    UNSUPPORTED_LANGUAGE = "UNSUPPORTED_LANGUAGE"   # No rule set or backend for language
    MODEL_FILES_MISSING = "MODEL_FILES_MISSING"     # Model directory incomplete
    MODEL_CONFIG_INVALID = "MODEL_CONFIG_INVALID"   # config.json unreadable or malformed
    VOICE_RESOURCE_CORRUPT = "VOICE_RESOURCE_CORRUPT"
    UNKNOWN_VOICE = "UNKNOWN_VOICE"
    INFERENCE_FAILED = "INFERENCE_FAILED"           # Backend raised during load or run
    MODEL_NOT_LOADED = "MODEL_NOT_LOADED"
    TIMEOUT = "TIMEOUT"                             # No free session within pool_timeout_s
    INTERNAL_ERROR = "INTERNAL_ERROR"


class TTSError(Exception):
    """
    Base exception for kokoro-stream errors.

    Attributes:
        message: Human-readable error message.
        code: Error code from ErrorCode.
        details: Extra context (file paths, voice ids, ...).
    """
    def __init__(self, message: str, code: str = ErrorCode.INTERNAL_ERROR, details: Optional[Dict] = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "ok": False,
            "error": self.code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class InvalidInputError(TTSError):
    """Malformed text encoding, empty text, or a bad parameter."""
    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.INVALID_INPUT, details)


class UnsupportedLanguageError(TTSError):
    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.UNSUPPORTED_LANGUAGE, details)


class ModelFilesMissingError(TTSError):
    """A required model, voices or config file is absent."""
    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.MODEL_FILES_MISSING, details)


class ModelConfigError(TTSError):
    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.MODEL_CONFIG_INVALID, details)


class VoiceResourceCorruptError(TTSError):
    """The voices archive exists but cannot be parsed or is inconsistent."""
    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.VOICE_RESOURCE_CORRUPT, details)


class UnknownVoiceError(TTSError):
    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.UNKNOWN_VOICE, details)


class InferenceError(TTSError):
    """The inference backend failed. Never retried."""
    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.INFERENCE_FAILED, details)


class ModelNotLoadedError(TTSError):
    def __init__(self, message: str = "no model loaded; call load_model() first", details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.MODEL_NOT_LOADED, details)


class SessionTimeoutError(TTSError):
    """No inference session became free in time."""
    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.TIMEOUT, details)
