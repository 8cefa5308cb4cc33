"""Input validation for signups and feedback."""

import re
from dataclasses import dataclass, field
from typing import Optional

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# RFC 3696 errata upper bound (64 local + @ + 255 domain)
MAX_EMAIL_LENGTH = 320

MIN_MESSAGE_LENGTH = 5

COMMON_DOMAINS = (
    "gmail.com",
    "yahoo.com",
    "hotmail.com",
    "outlook.com",
    "icloud.com",
)

# Typos that are more than one edit away from the provider domain
DOMAIN_CORRECTIONS = {
    "gmial.com": "gmail.com",
    "gmai.com": "gmail.com",
    "yahooo.com": "yahoo.com",
    "hotmial.com": "hotmail.com",
    "outlok.com": "outlook.com",
}


@dataclass
class EmailValidationResult:
    is_valid: bool
    error: Optional[str] = None
    message: Optional[str] = None
    suggestions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        result: dict = {"isValid": self.is_valid}
        if self.error:
            result["error"] = self.error
        if self.suggestions:
            result["suggestions"] = list(self.suggestions)
        return result


def normalize_email(raw: str) -> str:
    """Canonical form used as the uniqueness key."""
    return raw.strip().lower()


def is_email_format(raw: str) -> bool:
    """Bare `local@domain.tld` shape check, no suggestions."""
    return bool(EMAIL_PATTERN.match(raw.strip()))


def levenshtein_distance(a: str, b: str) -> int:
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(min(
                current[j - 1] + 1,
                previous[j] + 1,
                previous[j - 1] + (ca != cb),
            ))
        previous = current
    return previous[-1]


def suggest_domains(email: str) -> list[str]:
    """Corrected addresses for domains one edit away from a common provider."""
    local, _, domain = email.rpartition("@")
    if not local or not domain:
        return []
    return [
        f"{local}@{candidate}"
        for candidate in COMMON_DOMAINS
        if levenshtein_distance(domain, candidate) == 1
    ]


def _known_corrections(email: str) -> list[str]:
    local, _, domain = email.rpartition("@")
    if local and domain in DOMAIN_CORRECTIONS:
        return [f"{local}@{DOMAIN_CORRECTIONS[domain]}"]
    return []


def validate_email(raw: Optional[str]) -> EmailValidationResult:
    """
    Validate a submitted address.

    The address is trimmed and lower-cased first. A syntactically valid
    address whose domain is one edit away from a common provider stays valid
    and carries the corrected address in `suggestions`.
    """
    email = normalize_email(raw or "")

    if not email:
        return EmailValidationResult(False, "invalid_format", "Email is required")

    if len(email) > MAX_EMAIL_LENGTH:
        return EmailValidationResult(False, "too_long", "Email is too long")

    if not EMAIL_PATTERN.match(email):
        return EmailValidationResult(False, "invalid_format", "Please enter a valid email address")

    suggestions = _known_corrections(email)
    for suggestion in suggest_domains(email):
        if suggestion not in suggestions:
            suggestions.append(suggestion)
    return EmailValidationResult(True, suggestions=suggestions)


def is_message_long_enough(message: Optional[str]) -> bool:
    return bool(message) and len(message.strip()) >= MIN_MESSAGE_LENGTH
