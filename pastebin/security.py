"""
Validation and security gate in front of storage.

``ContentValidator`` enforces limits and flags, but never blocks on,
sensitive-looking content. It never touches storage; its only side effect is
structured security logging.
"""
import json
import logging
import re
from typing import List, NamedTuple, Optional

from pydantic import BaseModel, Field

from pastebin.errors import ValidationError
from pastebin.utils import format_bytes, format_duration, short_hash, utcnow, utf8_size

logger = logging.getLogger(__name__)


class SuspiciousPattern(NamedTuple):
    name: str
    pattern: re.Pattern
    severity: str  # high | medium | low


SUSPICIOUS_PATTERNS: List[SuspiciousPattern] = [
    # API keys and tokens
    SuspiciousPattern("api_key", re.compile(r"(api[_-]?key|token|secret)[\s\"']*[:=][\s\"']*[a-zA-Z0-9]{20,}", re.I), "high"),
    SuspiciousPattern("aws_key", re.compile(r"AKIA[0-9A-Z]{16}"), "high"),
    SuspiciousPattern("openai_key", re.compile(r"sk-[a-zA-Z0-9]{48}", re.I), "high"),
    SuspiciousPattern("github_token", re.compile(r"gh[pousr]_[A-Za-z0-9_]{36,255}"), "high"),
    SuspiciousPattern("jwt_token", re.compile(r"eyJ[A-Za-z0-9\-_=]+\.[A-Za-z0-9\-_=]+\.?[A-Za-z0-9\-_.+/=]*"), "medium"),
    # Credentials
    SuspiciousPattern("password", re.compile(r"(password|pwd|passwd)\s*[:=]\s*[\"']?[^\s\"']{8,}", re.I), "medium"),
    SuspiciousPattern("connection_string", re.compile(r"(mongodb|postgres|mysql)://[^\s]+", re.I), "high"),
    # PII
    SuspiciousPattern("ssn", re.compile(r"\b\d{3}-?\d{2}-?\d{4}\b"), "high"),
    SuspiciousPattern("credit_card", re.compile(r"\b(?:\d{4}[\s-]?){3}\d{4}\b"), "high"),
    # Local part must start a run and domain labels are dot-separated, so a failed match never rescans
    SuspiciousPattern("email_bulk", re.compile(
        r"(?:(?<![A-Za-z0-9._%+-])[A-Za-z0-9._%+-]+@[A-Za-z0-9-]+(?:\.[A-Za-z0-9-]+)*\.[A-Za-z]{2,}\s*[,;\n]){5,}"
    ), "medium"),
]

_REPEATED_CHAR = re.compile(r"(.)\1{100,}", re.S)


class ValidationResult(BaseModel):
    ok: bool
    error: Optional[str] = None
    code: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)

    @classmethod
    def fail(cls, code: str, error: str) -> "ValidationResult":
        return cls(ok=False, code=code, error=error)

    def raise_for_error(self) -> None:
        if not self.ok:
            raise ValidationError(self.error, self.code)


class ContentValidator:
    def __init__(
        self,
        max_content_size: int = 1024 * 1024,
        max_title_length: int = 200,
        min_expiry: int = 300,
        max_expiry: int = 2592000,
        suspicious_patterns_enabled: bool = True,
        strict_validation: bool = False,
    ):
        self.max_content_size = max_content_size
        self.max_title_length = max_title_length
        self.min_expiry = min_expiry
        self.max_expiry = max_expiry
        self.suspicious_patterns_enabled = suspicious_patterns_enabled
        self.strict_validation = strict_validation

    def validate(self, content: str, title: str = "") -> ValidationResult:
        if not content or not content.strip():
            return ValidationResult.fail(ValidationError.EMPTY_CONTENT, "Content cannot be empty")

        title = title or ""
        try:
            size = utf8_size(content)
            utf8_size(title)
        except UnicodeEncodeError:
            # Lone surrogates survive JSON decoding but cannot be stored
            return ValidationResult.fail(ValidationError.INVALID_ENCODING, "Content is not valid UTF-8 text")

        if size > self.max_content_size:
            return ValidationResult.fail(
                ValidationError.CONTENT_TOO_LARGE,
                f"Content too large ({format_bytes(size)} / {format_bytes(self.max_content_size)} max)",
            )

        if len(title) > self.max_title_length:
            return ValidationResult.fail(
                ValidationError.TITLE_TOO_LONG,
                f"Title too long ({len(title)} / {self.max_title_length} max characters)",
            )

        warnings: List[str] = []
        if self.strict_validation:
            warnings.extend(self._quality_warnings(content))
        if self.suspicious_patterns_enabled:
            warnings.extend(self._check_suspicious_content(content, title))

        return ValidationResult(ok=True, warnings=warnings)

    def validate_expiry(self, seconds: int) -> ValidationResult:
        if seconds is None or seconds < 0:
            return ValidationResult.fail(ValidationError.EXPIRY_TOO_SHORT, "Invalid expiry time")
        if seconds < self.min_expiry:
            return ValidationResult.fail(
                ValidationError.EXPIRY_TOO_SHORT,
                f"Minimum expiry time is {format_duration(self.min_expiry)}",
            )
        if seconds > self.max_expiry:
            return ValidationResult.fail(
                ValidationError.EXPIRY_TOO_LONG,
                f"Maximum expiry time is {format_duration(self.max_expiry)}",
            )
        return ValidationResult(ok=True)

    def _quality_warnings(self, content: str) -> List[str]:
        warnings = []
        whitespace = sum(1 for ch in content if ch.isspace())
        if whitespace / len(content) > 0.5:
            warnings.append("Content contains excessive whitespace")
        if _REPEATED_CHAR.search(content):
            warnings.append("Content contains excessive character repetition")
        long_lines = sum(1 for line in content.split("\n") if len(line) > 1000)
        if long_lines:
            warnings.append(f"Content contains {long_lines} very long line(s)")
        return warnings

    def _check_suspicious_content(self, content: str, title: str) -> List[str]:
        warnings = []
        full_text = f"{title} {content}"
        for detector in SUSPICIOUS_PATTERNS:
            match_count = sum(1 for _ in detector.pattern.finditer(full_text))
            if not match_count:
                continue
            # Only a digest of the first 100 characters, never the match itself
            log_security_event({
                "event": "suspicious_content_detected",
                "pattern": detector.name,
                "severity": detector.severity,
                "matchCount": match_count,
                "contentLength": len(content),
                "timestamp": utcnow().isoformat(),
                "contentHash": short_hash(content[:100]),
            })
            if detector.severity == "high":
                warnings.append(f"Potentially sensitive {detector.name.replace('_', ' ')} detected")
        return warnings


def log_security_event(event: dict) -> None:
    logger.warning(json.dumps({**event, "level": "SECURITY", "source": "ContentValidator"}))
