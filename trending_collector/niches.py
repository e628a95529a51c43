"""Keyword-based niche tagging for video titles and channel names.

Matching is a plain substring test on normalised text, not a word-boundary
match: the keyword ``"ev"`` also matches ``"every"``. Existing feed hits were
tagged this way, so the behaviour is kept as-is.
"""
from __future__ import annotations

import re
from typing import NamedTuple

_PUNCTUATION_RE = re.compile(r"[^A-Za-z0-9_\s]")
_WHITESPACE_RE = re.compile(r"\s+")


class NicheDefinition(NamedTuple):
    name: str
    keywords: tuple[str, ...]


NICHES: tuple[NicheDefinition, ...] = (
    NicheDefinition(
        "Luxury Houses / Real Estate",
        (
            "luxury home", "luxury house", "mansion", "villa", "penthouse",
            "estate tour", "house tour", "property tour", "architectural digest",
            "real estate", "dream home", "modern house", "interior design",
            "architecture tour", "luxury property", "luxury estate", "luxury real estate",
            "luxury residence", "million dollar", "expensive house", "expensive home",
            "luxury apartment", "luxury condo", "waterfront property", "beachfront",
            "luxury listing", "property showcase", "home design", "luxury interior",
        ),
    ),
    NicheDefinition(
        "Engineering",
        (
            "engineering", "mechanical", "electrical", "civil engineering",
            "structural", "cad", "solidworks", "autocad", "robotics", "cnc",
            "manufacturing", "aerospace", "automation", "control systems",
            "thermodynamics",
        ),
    ),
    NicheDefinition(
        "Pets",
        (
            "dog", "puppy", "cat", "kitten", "pet", "pets", "training", "vet",
            "grooming", "rescue", "hamster", "parrot", "aquarium",
        ),
    ),
    NicheDefinition(
        "Court / Law",
        (
            "court", "trial", "judge", "lawsuit", "legal", "attorney", "lawyer",
            "prosecutor", "verdict", "sentencing", "supreme court",
        ),
    ),
    NicheDefinition(
        "Luxury (General)",
        (
            "luxury", "premium", "high end", "exclusive", "bespoke",
            "limited edition", "collector", "luxury lifestyle", "ultra luxury",
            "luxury living", "opulent", "extravagant", "lavish", "prestige",
        ),
    ),
    NicheDefinition(
        "Luxury Women Clothing & Accessories",
        (
            "chanel", "hermes", "dior", "louis vuitton", "lv", "gucci", "prada",
            "ysl", "balenciaga", "fendi", "burberry", "handbag", "purse", "heels",
            "jewelry", "accessories", "luxury fashion", "unboxing",
        ),
    ),
    NicheDefinition(
        "Stock Market / Investing",
        (
            "stock", "stocks", "options", "earnings", "nasdaq", "nyse", "sp500",
            "etf", "investing", "trading", "technical analysis", "dividends",
        ),
    ),
    NicheDefinition(
        "Business",
        (
            "business", "entrepreneur", "startup", "founder", "saas", "marketing",
            "sales", "strategy", "leadership", "side hustle",
        ),
    ),
    NicheDefinition(
        "Travel",
        (
            "travel", "trip", "guide", "hotel", "resort", "itinerary", "vlog",
            "city tour", "luxury travel",
        ),
    ),
    NicheDefinition(
        "Automobiles",
        (
            "car", "automotive", "test drive", "review", "supercar", "hypercar",
            "suv", "sedan",
        ),
    ),
    NicheDefinition(
        "Electric Vehicles",
        (
            "ev", "electric vehicle", "tesla", "rivian", "lucid", "charging",
            "battery", "range test",
        ),
    ),
    NicheDefinition(
        "Website / SaaS Reviews",
        (
            "website review", "ux", "ui", "landing page", "audit", "figma",
            "webflow", "shopify", "wordpress",
        ),
    ),
    NicheDefinition(
        "Make Money Online",
        (
            "make money online", "mmo", "affiliate", "dropshipping", "amazon fba",
            "freelancing", "passive income",
        ),
    ),
    NicheDefinition(
        "Yachts",
        (
            "yacht", "superyacht", "mega yacht", "catamaran", "sailing yacht",
            "marina",
        ),
    ),
    NicheDefinition(
        "Tech",
        (
            "tech", "gadgets", "smartphone", "laptop", "cpu", "gpu", "ai",
            "chatgpt", "programming", "software",
        ),
    ),
    NicheDefinition(
        "Economy / Macro",
        (
            "inflation", "interest rates", "fed", "ecb", "recession", "gdp",
            "bonds", "oil price", "forex",
        ),
    ),
    NicheDefinition(
        "History",
        (
            "history", "ancient", "medieval", "ww2", "roman", "egypt",
            "documentary",
        ),
    ),
    NicheDefinition(
        "Football (Soccer)",
        (
            "football", "soccer", "premier league", "champions league", "la liga",
            "bundesliga", "world cup",
        ),
    ),
    NicheDefinition(
        "High-Paying Meta Tags",
        (
            "finance", "mortgage", "insurance", "tax", "cloud", "aws", "azure",
            "cybersecurity", "real estate", "legal", "luxury",
        ),
    ),
)

NICHE_NAMES: tuple[str, ...] = tuple(n.name for n in NICHES)


def normalize_text(text: str) -> str:
    """Lower-case, turn punctuation into spaces and collapse whitespace."""
    text = _PUNCTUATION_RE.sub(" ", text.lower())
    return _WHITESPACE_RE.sub(" ", text).strip()


def classify_niches(title: str, channel_title: str) -> list[str]:
    """Return the names of every niche with a keyword found in the text.

    Names come back in declaration order of ``NICHES``; an empty list means
    no niche matched.
    """
    combined = normalize_text(f"{title} {channel_title}")
    matched: list[str] = []
    for niche in NICHES:
        if any(normalize_text(keyword) in combined for keyword in niche.keywords):
            matched.append(niche.name)
    return matched
