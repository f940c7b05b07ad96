"""Remediation engine adapters."""

from .api_engine import ApiEngine
from .base import Engine, RemediationTask, classify_error, sanitize_prompt
from .cli_engine import CliEngine
from .parser import ParsedResponse, parse_response

__all__ = [
    "ApiEngine",
    "CliEngine",
    "Engine",
    "ParsedResponse",
    "RemediationTask",
    "classify_error",
    "parse_response",
    "sanitize_prompt",
]
