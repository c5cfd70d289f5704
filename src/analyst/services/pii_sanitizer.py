"""
PII sanitizer: the privacy shield in front of the report generator.
Nothing reaches the LLM provider without passing through sanitize().

Masking runs as sequential regex passes in a fixed order:
    credit card → email → IPv6 → IPv4 → phone
Each pass sees the output of the previous one, so text already replaced by a
token cannot be re-matched by a looser pattern further down the list.
Phone numbers go last because their pattern is the most permissive.
"""
import enum
import logging
import re
from dataclasses import dataclass

from analyst.services.audit_service import log_event

logger = logging.getLogger(__name__)


class PiiCategory(str, enum.Enum):
    EMAIL       = "EMAIL"
    IP          = "IP"
    PHONE       = "PHONE"
    CREDIT_CARD = "CREDIT_CARD"


EMAIL_REDACTED = "[EMAIL_REDACTED]"
IP_REDACTED    = "[IP_REDACTED]"
PHONE_REDACTED = "[PHONE_REDACTED]"
CC_REDACTED    = "[CC_REDACTED]"

# ── Patterns ──────────────────────────────────────────────────────────────────

CREDIT_CARD_RE = re.compile(
    r"\b(?:4[0-9]{12}(?:[0-9]{3})?"                         # Visa
    r"|5[1-5][0-9]{14}"                                     # MasterCard
    r"|3[47][0-9]{13}"                                      # American Express
    r"|6(?:011|5[0-9]{2})[0-9]{12}"                         # Discover
    r"|(?:2131|1800|35[0-9]{3})[0-9]{11})\b"                # JCB
    r"|\b[0-9]{4}[- ]?[0-9]{4}[- ]?[0-9]{4}[- ]?[0-9]{4}\b"  # generic 4x4 with separators
)

EMAIL_RE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}", re.IGNORECASE)

# Range-aware octet: 0-255 only, so 999.1.1.1 is not an address
_OCTET = r"(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)"
_IPV4 = rf"(?:{_OCTET}\.){{3}}{_OCTET}"

IPV4_RE = re.compile(rf"\b{_IPV4}\b")

_H = r"[0-9a-fA-F]{1,4}"

# Alternation is first-match, not longest-match. Compressed forms are ordered
# by how many groups they allow before "::" (fewest first) so the alternative
# that wins always consumes the whole address instead of stopping at "::".
IPV6_RE = re.compile(
    rf"(?:{_H}:){{7}}{_H}"                       # full 8 groups
    rf"|::(?:[fF]{{4}}:)?{_IPV4}"                # IPv4-mapped ::ffff:a.b.c.d
    rf"|{_H}:(?::{_H}){{1,6}}"                   # a::b:c:d:e:f:g
    rf"|(?:{_H}:){{1,2}}(?::{_H}){{1,5}}"
    rf"|(?:{_H}:){{1,3}}(?::{_H}){{1,4}}"
    rf"|(?:{_H}:){{1,4}}(?::{_H}){{1,3}}"
    rf"|(?:{_H}:){{1,5}}(?::{_H}){{1,2}}"
    rf"|(?:{_H}:){{1,6}}:{_H}"                   # a:b:c:d:e:f::g
    rf"|(?:{_H}:){{1,7}}:"                       # a:b::  (trailing compression)
    rf"|:(?::{_H}){{1,7}}"                       # ::a:b  (leading compression)
)

PHONE_RE = re.compile(
    r"(?:\+?1[-.\s]?)?\(?[0-9]{3}\)?[-.\s]?[0-9]{3}[-.\s]?[0-9]{4}"  # North American, optional +1
    r"|\+?[0-9]{1,4}[-.\s]?[0-9]{6,12}"                              # international
    r"|\b[0-9]{3}[-.\s]?[0-9]{3}[-.\s]?[0-9]{4}\b"                    # bare 10-digit
)

# Precedence order. Do not reorder: output and counts change on ambiguous input.
_PASSES: list[tuple[PiiCategory, re.Pattern, str]] = [
    (PiiCategory.CREDIT_CARD, CREDIT_CARD_RE, CC_REDACTED),
    (PiiCategory.EMAIL,       EMAIL_RE,       EMAIL_REDACTED),
    (PiiCategory.IP,          IPV6_RE,        IP_REDACTED),
    (PiiCategory.IP,          IPV4_RE,        IP_REDACTED),
    (PiiCategory.PHONE,       PHONE_RE,       PHONE_REDACTED),
]


@dataclass(frozen=True)
class SanitizationResult:
    """Sanitized text plus what was masked. Never stored."""
    sanitized_text: str
    total_masked_entities: int
    detected_categories: tuple[PiiCategory, ...] = ()


def sanitize(text: str | None) -> SanitizationResult:
    """
    Mask every email, IP (v4/v6), phone and credit-card number in `text`.

    The count for each pass is taken from the same substitution that masks it,
    i.e. against the text as it stood before that pass. Categories are listed
    once each, in the order they were first detected.
    """
    if not text or not text.strip():
        return SanitizationResult("", 0)

    sanitized = text
    total = 0
    detected: list[PiiCategory] = []

    for category, pattern, token in _PASSES:
        sanitized, count = pattern.subn(token, sanitized)
        if count:
            total += count
            if category not in detected:
                detected.append(category)

    if total > 0:
        _audit_masking(total, detected)

    return SanitizationResult(sanitized, total, tuple(detected))


def _audit_masking(total: int, detected: list[PiiCategory]) -> None:
    """Compliance trail for a masking event. Must never fail the caller."""
    categories = [c.value for c in detected]
    logger.warning(
        "Privacy Shield Active: masking %d detected PII entities before external transmission. Types: %s",
        total, categories,
    )
    try:
        log_event("PII_MASKED", "sanitizer", detail={"categories": categories, "count": total})
    except Exception as e:
        logger.error("Audit write for PII masking failed: %s", e)
