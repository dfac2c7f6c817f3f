# csv_processor/engine/validator.py
import re
import logging
from dataclasses import dataclass
from typing import List, Optional, Pattern

from csv_processor.config import ValidationLimits, get_config

logger = logging.getLogger(__name__)

# Patterns associated with script or template injection, matched case-insensitively
UNSAFE_CONTENT_PATTERNS: List[Pattern] = [
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"vbscript:", re.IGNORECASE),
    re.compile(r"eval\s*\(", re.IGNORECASE),
    re.compile(r"function\s*\(", re.IGNORECASE),
    re.compile(r"settimeout\s*\(", re.IGNORECASE),
    re.compile(r"document\.(cookie|write)", re.IGNORECASE),
    re.compile(
        r"\bon(load|unload|error|abort|click|dblclick|mouse[a-z]*|key[a-z]*|focus|blur"
        r"|change|input|submit|reset|select|toggle|pointer[a-z]*|touch[a-z]*|animation[a-z]*)\s*=",
        re.IGNORECASE,
    ),
    re.compile(r"\{\{|\{%|<%|\$\{"),
]

_LINE_BREAK = re.compile(r"\r\n|\r|\n")

@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    error: Optional[str] = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(valid=True)

    @classmethod
    def fail(cls, error: str) -> "ValidationResult":
        return cls(valid=False, error=error)

class CSVValidator:
    """Size, shape and content-safety checks on raw CSV text"""

    def __init__(self, limits: Optional[ValidationLimits] = None):
        self.limits = limits or get_config().validation

    def validate(self, raw: str) -> ValidationResult:
        """Run every check in order, stopping at the first failure"""
        if not raw or not raw.strip():
            return ValidationResult.fail("Empty CSV data")

        size_mb = len(raw.encode("utf-8")) / (1024 * 1024)
        if size_mb > self.limits.MAX_PAYLOAD_MB:
            return ValidationResult.fail(f"CSV data too large ({size_mb:.2f}MB)")

        lines = _LINE_BREAK.split(raw.strip())
        if not lines:
            return ValidationResult.fail("CSV must have at least a header row")

        headers = [header.strip() for header in lines[0].split(",")]
        if not headers:
            return ValidationResult.fail("No columns detected in CSV")

        if len(headers) > self.limits.MAX_COLUMNS:
            return ValidationResult.fail(f"Too many columns (max: {self.limits.MAX_COLUMNS:,})")

        if len(lines) > self.limits.MAX_ROWS:
            return ValidationResult.fail(f"Too many rows (max: {self.limits.MAX_ROWS:,})")

        if self.contains_unsafe_content(raw):
            return ValidationResult.fail("CSV contains potentially unsafe content")

        return ValidationResult.ok()

    @staticmethod
    def contains_unsafe_content(raw: str) -> bool:
        for pattern in UNSAFE_CONTENT_PATTERNS:
            if pattern.search(raw):
                logger.warning(f"Rejected CSV payload matching unsafe pattern {pattern.pattern!r}")
                return True
        return False

def validate_csv(raw: str, limits: Optional[ValidationLimits] = None) -> ValidationResult:
    """Validate raw CSV text against the configured limits"""
    return CSVValidator(limits).validate(raw)
