"""
Pattern-based hint extraction for cross-module pre-fill.

Fixed pattern lists, no NLP model: good enough to pre-fill a travel search or
a product comparison, not meant as general entity recognition.
"""

from __future__ import annotations

import re

_LOCATION_PATTERNS = (
    re.compile(
        r"\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*\s+(?:Airport|Hotel|Resort|Beach|City|State|Country)\b"
    ),
    re.compile(
        r"\b(?:New York|Los Angeles|Chicago|Houston|Philadelphia|San Francisco|Boston|Seattle"
        r"|Miami|Las Vegas)\b",
        re.IGNORECASE,
    ),
    re.compile(
        r"\b(?:London|Paris|Tokyo|Sydney|Rome|Barcelona|Amsterdam|Berlin|Vienna|Prague)\b",
        re.IGNORECASE,
    ),
)

_MONTH = r"(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*"
_DATE_PATTERNS = (
    re.compile(r"\b\d{1,2}/\d{1,2}/\d{2,4}\b"),
    re.compile(rf"\b{_MONTH}\s+\d{{1,2}}(?:st|nd|rd|th)?,?\s+\d{{2,4}}\b", re.IGNORECASE),
    re.compile(rf"\b\d{{1,2}}(?:st|nd|rd|th)?\s+{_MONTH}\s+\d{{2,4}}\b", re.IGNORECASE),
)

_PRODUCT_PATTERNS = (
    re.compile(
        r"\b(?:laptop|phone|tablet|computer|headphones|camera|watch|shoes|clothing|book)\b",
        re.IGNORECASE,
    ),
    re.compile(r"\b[A-Z][a-z]+\s+(?:Pro|Max|Plus|Air|Mini|Ultra)\b"),
    re.compile(r"\biPhone\s+\d+\b", re.IGNORECASE),
    re.compile(r"\bMacBook\s+(?:Pro|Air)\b", re.IGNORECASE),
)

_PRICE_PATTERNS = (
    re.compile(r"\$\d+(?:,\d{3})*(?:\.\d{2})?"),
    re.compile(r"\b\d+(?:,\d{3})*(?:\.\d{2})?\s*(?:dollars?|USD|usd)\b", re.IGNORECASE),
    re.compile(r"(?:€|\bEUR)\s*\d+(?:,\d{3})*(?:\.\d{2})?"),
)

_COMPANY_PATTERNS = (
    re.compile(
        r"\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*\s+(?:Inc|LLC|Corp|Corporation|Company|Ltd|Limited)\b"
    ),
    re.compile(
        r"\b(?:Google|Apple|Microsoft|Amazon|Facebook|Meta|Netflix|Tesla|Uber|Airbnb|Spotify"
        r"|LinkedIn)\b",
        re.IGNORECASE,
    ),
    re.compile(
        r"\b(?:Goldman Sachs|JP Morgan|Morgan Stanley|Bank of America|Wells Fargo|Citibank)\b",
        re.IGNORECASE,
    ),
)

SKILL_KEYWORDS = (
    "JavaScript",
    "Python",
    "React",
    "Node.js",
    "TypeScript",
    "AWS",
    "Docker",
    "Kubernetes",
    "MongoDB",
    "PostgreSQL",
    "Machine Learning",
    "Data Science",
    "AI",
    "DevOps",
    "Project Management",
    "Agile",
    "Scrum",
    "Leadership",
)
_SKILL_PATTERNS = tuple(
    (skill, re.compile(rf"\b{re.escape(skill)}\b", re.IGNORECASE)) for skill in SKILL_KEYWORDS
)


def _collect(text: str, patterns) -> list[str]:
    found: list[str] = []
    for pattern in patterns:
        for match in pattern.finditer(text):
            value = match.group(0).strip()
            if value not in found:
                found.append(value)
    return found


def extract_locations(text: str) -> list[str]:
    return _collect(text, _LOCATION_PATTERNS)


def extract_dates(text: str) -> list[str]:
    return _collect(text, _DATE_PATTERNS)


def extract_products(text: str) -> list[str]:
    return _collect(text, _PRODUCT_PATTERNS)


def extract_prices(text: str) -> list[str]:
    return _collect(text, _PRICE_PATTERNS)


def extract_companies(text: str) -> list[str]:
    return _collect(text, _COMPANY_PATTERNS)


def extract_skills(text: str) -> list[str]:
    return [skill for skill, pattern in _SKILL_PATTERNS if pattern.search(text)]
