"""
Input Sanitization and Threat Detection
=======================================

Sanitization and detection are kept apart:
- sanitize() always succeeds and is safe to apply before storage or display
- detectors only report; they never block or alter the input

Detection is a strategy (ThreatDetector) so stronger detectors can replace
the default regex pattern sets without touching the monitor.

Author: jetgause
Created: 2025-12-12
Version: 1.0.0
"""

import re
import html
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urlparse, urlunparse, quote

import bleach

logger = logging.getLogger(__name__)


CONTROL_CHARS = re.compile(r'[\x00-\x1f\x7f]')
WHITESPACE_RUN = re.compile(r'\s+')
PARTIAL_ENTITY = re.compile(r'&[#a-zA-Z0-9]*$')
EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
FILENAME_UNSAFE = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
PHONE_UNSAFE = re.compile(r'[^0-9+\-() ]')

ALLOWED_HTML_TAGS = frozenset({'b', 'i', 'em', 'strong', 'p', 'br'})
ALLOWED_URL_SCHEMES = frozenset({'http', 'https'})

DEFAULT_MAX_LENGTH = 1000
MAX_EMAIL_LENGTH = 254
MAX_URL_LENGTH = 2048
MAX_FILENAME_LENGTH = 255


# ============================================================================
# Threat Detection
# ============================================================================

@dataclass(frozen=True)
class ThreatPattern:
    """A named detection pattern."""
    name: str
    pattern: re.Pattern
    description: str


XSS_PATTERNS = (
    ThreatPattern(
        name="script_tag",
        pattern=re.compile(r'<script\b[^>]*>', re.IGNORECASE),
        description="Script tag injection"
    ),
    ThreatPattern(
        name="iframe_tag",
        pattern=re.compile(r'<iframe\b[^>]*>', re.IGNORECASE),
        description="Iframe tag injection"
    ),
    ThreatPattern(
        name="embed_tag",
        pattern=re.compile(r'<embed\b[^>]*>', re.IGNORECASE),
        description="Embed tag injection"
    ),
    ThreatPattern(
        name="object_tag",
        pattern=re.compile(r'<object\b[^>]*>', re.IGNORECASE),
        description="Object tag injection"
    ),
    ThreatPattern(
        name="link_tag",
        pattern=re.compile(r'<link\b[^>]*>', re.IGNORECASE),
        description="Link tag injection"
    ),
    ThreatPattern(
        name="meta_tag",
        pattern=re.compile(r'<meta\b[^>]*>', re.IGNORECASE),
        description="Meta tag injection"
    ),
    ThreatPattern(
        name="javascript_protocol",
        pattern=re.compile(r'javascript\s*:', re.IGNORECASE),
        description="JavaScript protocol in URL"
    ),
    ThreatPattern(
        name="on_event_handler",
        pattern=re.compile(r'\bon\w+\s*=', re.IGNORECASE),
        description="Event handler attribute (onclick, onerror, etc.)"
    ),
)

# Permissive on purpose: results feed monitoring only, never blocking
SQL_INJECTION_PATTERNS = (
    ThreatPattern(
        name="quote",
        pattern=re.compile(r"['\"]"),
        description="String delimiter"
    ),
    ThreatPattern(
        name="statement_terminator",
        pattern=re.compile(r';'),
        description="Statement terminator"
    ),
    ThreatPattern(
        name="comment_marker",
        pattern=re.compile(r'(--|#|/\*)'),
        description="SQL comment marker"
    ),
    ThreatPattern(
        name="sql_keyword",
        pattern=re.compile(
            r'\b(union|select|insert|update|delete|drop|create|alter|exec|execute)\b',
            re.IGNORECASE
        ),
        description="SQL/DDL keyword"
    ),
)


class ThreatDetector(ABC):
    """Interface for input threat detectors."""

    @abstractmethod
    def detect_xss(self, text: str) -> bool:
        """Return True if the text looks like an XSS payload."""

    @abstractmethod
    def detect_sql_injection(self, text: str) -> bool:
        """Return True if the text looks like an SQL injection payload."""


class RegexThreatDetector(ThreatDetector):
    """Detector driven by swappable regex pattern sets."""

    def __init__(
        self,
        xss_patterns: Sequence[ThreatPattern] = XSS_PATTERNS,
        sql_patterns: Sequence[ThreatPattern] = SQL_INJECTION_PATTERNS
    ):
        self.xss_patterns = tuple(xss_patterns)
        self.sql_patterns = tuple(sql_patterns)

    @staticmethod
    def _matches(patterns: Sequence[ThreatPattern], text: Any) -> List[ThreatPattern]:
        if not isinstance(text, str) or not text:
            return []
        return [p for p in patterns if p.pattern.search(text)]

    def match_xss(self, text: str) -> List[ThreatPattern]:
        """Return every XSS pattern found in the text."""
        return self._matches(self.xss_patterns, text)

    def match_sql_injection(self, text: str) -> List[ThreatPattern]:
        """Return every SQL injection pattern found in the text."""
        return self._matches(self.sql_patterns, text)

    def detect_xss(self, text: str) -> bool:
        return bool(self.match_xss(text))

    def detect_sql_injection(self, text: str) -> bool:
        return bool(self.match_sql_injection(text))


default_detector = RegexThreatDetector()


def detect_xss(text: str) -> bool:
    """
    Detect potential XSS attempts.

    Args:
        text: String to check

    Returns:
        True if an XSS pattern is present
    """
    return default_detector.detect_xss(text)


def detect_sql_injection(text: str) -> bool:
    """
    Detect potential SQL injection attempts.

    Args:
        text: String to check

    Returns:
        True if SQL meta-characters or keywords are present
    """
    return default_detector.detect_sql_injection(text)


# ============================================================================
# Sanitization
# ============================================================================

class Sanitizer:
    """String sanitization that degrades to safe defaults instead of raising."""

    @staticmethod
    def sanitize(
        value: Any,
        allow_html: bool = False,
        max_length: int = DEFAULT_MAX_LENGTH,
        collapse_spaces: bool = True
    ) -> str:
        """
        Neutralize an untrusted string.

        Args:
            value: Input to sanitize (None yields "")
            allow_html: Keep a small allow-list of formatting tags
            max_length: Maximum length of the result
            collapse_spaces: Collapse whitespace runs and trim

        Returns:
            Sanitized string
        """
        if value is None:
            return ""

        try:
            text = value if isinstance(value, str) else str(value)
            if not text:
                return ""

            text = CONTROL_CHARS.sub('', text)

            if allow_html:
                text = bleach.clean(
                    text,
                    tags=ALLOWED_HTML_TAGS,
                    attributes={},
                    protocols=[],
                    strip=True,
                    strip_comments=True
                )
            else:
                text = html.escape(text, quote=True).strip()

            if collapse_spaces:
                text = WHITESPACE_RUN.sub(' ', text).strip()

            if max_length and len(text) > max_length:
                # Never leave half an entity at the cut
                text = PARTIAL_ENTITY.sub('', text[:max_length])

            return text
        except Exception as e:
            logger.error(f"Sanitization failed: {type(e).__name__}")
            return ""

    @classmethod
    def sanitize_object(cls, data: Any, **options) -> Any:
        """
        Recursively sanitize string values of dicts and lists.

        Args:
            data: Dict, list or scalar
            **options: Options forwarded to sanitize()

        Returns:
            Sanitized copy of the data
        """
        if isinstance(data, str):
            return cls.sanitize(data, **options)
        if isinstance(data, dict):
            return {key: cls.sanitize_object(value, **options) for key, value in data.items()}
        if isinstance(data, (list, tuple)):
            return [cls.sanitize_object(item, **options) for item in data]
        return data

    @classmethod
    def sanitize_email(cls, email: Optional[str]) -> Optional[str]:
        """Return the lowercased email, or None if it is not email-shaped."""
        if not email:
            return None
        sanitized = cls.sanitize(email, max_length=MAX_EMAIL_LENGTH)
        if EMAIL_PATTERN.match(sanitized):
            return sanitized.lower()
        return None

    @staticmethod
    def sanitize_url(url: Optional[str]) -> Optional[str]:
        """Return a normalized http(s) URL, or None."""
        if not url or not isinstance(url, str):
            return None

        candidate = CONTROL_CHARS.sub('', url).strip()
        if not candidate or len(candidate) > MAX_URL_LENGTH:
            return None

        try:
            parsed = urlparse(candidate)
        except ValueError:
            return None

        if parsed.scheme.lower() not in ALLOWED_URL_SCHEMES or not parsed.netloc:
            return None

        safe = quote(urlunparse(parsed), safe=':/?#[]@!$&()*+,;=%~')
        return safe

    @staticmethod
    def sanitize_filename(filename: Optional[str]) -> str:
        """Strip filesystem-unsafe characters and leading dots."""
        if not filename or not isinstance(filename, str):
            return ""
        sanitized = FILENAME_UNSAFE.sub('', filename)
        sanitized = sanitized.lstrip('.').strip()
        return sanitized[:MAX_FILENAME_LENGTH]

    @staticmethod
    def sanitize_phone(phone: Optional[str]) -> str:
        """Keep digits, '+', '-', parentheses and spaces."""
        if not phone or not isinstance(phone, str):
            return ""
        return PHONE_UNSAFE.sub('', phone).strip()


# Module-level conveniences

def sanitize(value: Any, **options) -> str:
    """Shortcut for Sanitizer.sanitize."""
    return Sanitizer.sanitize(value, **options)


def sanitize_object(data: Dict[str, Any], **options) -> Dict[str, Any]:
    """Shortcut for Sanitizer.sanitize_object."""
    return Sanitizer.sanitize_object(data, **options)


sanitize_email = Sanitizer.sanitize_email
sanitize_url = Sanitizer.sanitize_url
sanitize_filename = Sanitizer.sanitize_filename
sanitize_phone = Sanitizer.sanitize_phone


__all__ = [
    'ThreatPattern',
    'ThreatDetector',
    'RegexThreatDetector',
    'XSS_PATTERNS',
    'SQL_INJECTION_PATTERNS',
    'ALLOWED_HTML_TAGS',
    'default_detector',
    'detect_xss',
    'detect_sql_injection',
    'Sanitizer',
    'sanitize',
    'sanitize_object',
    'sanitize_email',
    'sanitize_url',
    'sanitize_filename',
    'sanitize_phone',
]
