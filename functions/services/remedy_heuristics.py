"""
Repair vs replace heuristics for detected issues.

Rule-based recommendation run over vision-detected issue text. Rules are
evaluated in order and the first match decides:

1. Corrosion or mineral buildup -> replace (0.85)
2. Staining or age, no cartridge/washer/o-ring mention -> replace (0.75)
3. Unknown age -> replace (0.65)
4. Cracking or pitting -> replace (0.9)
5. Otherwise -> repair (0.8, or 0.85 when a cartridge is mentioned)

Only the faucet family has rules today; other issue types get no
recommendation.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional

from services.remedy_service import Remedy

REPLACEMENT_SIGNALS = [
    "corrosion",
    "corroded",
    "rust",
    "rusty",
    "mineral_buildup",
    "mineral buildup",
    "calcium buildup",
    "stained",
    "aged",
    "old",
    "outdated",
    "dated",
    "worn",
    "heavily worn",
    "pitting",
    "discolored",
    "deteriorated",
    "cracked",
    "broken handle",
    "stripped",
    "cross-threaded",
]

REPAIR_SIGNALS = [
    "dripping",
    "slow drip",
    "minor leak",
    "handle loose",
    "cartridge",
    "washer",
    "o-ring",
    "valve seat",
    "aerator",
]

AGE_PATTERN = re.compile(r"\b(10|15|20|25|30)\+?\s*(year|yr)", re.IGNORECASE)

FAUCET_ISSUE_TYPES = ("leaking_faucet", "faucet_issue")

# "faucet" at a word start, "tap" only as a whole word (not "tape", "laptop")
FAUCET_PATTERN = re.compile(r"\bfaucet|\btaps?\b")


@dataclass
class RemedyRecommendation:
    """Recommended remedy for a detected issue."""

    recommended: Remedy
    confidence: float
    rationale: List[str] = field(default_factory=list)


def detect_issue_type(label: str, description: Optional[str] = None) -> Optional[str]:
    """Detect the issue type from a detected issue's label and description."""
    text = f"{label} {description or ''}".lower()

    if FAUCET_PATTERN.search(text) or (
        "leak" in text and ("sink" in text or "basin" in text)
    ):
        if "leak" in text or "drip" in text:
            return "leaking_faucet"
        return "faucet_issue"

    return None


def remedy_family(issue_type: Optional[str]) -> Optional[str]:
    """Issue type key used by remedy markers for a detected issue type."""
    if issue_type in FAUCET_ISSUE_TYPES:
        return "leaking_faucet"
    return issue_type


def extract_condition_tags(
    label: str,
    description: Optional[str] = None,
    notes: Optional[str] = None,
) -> List[str]:
    """Condition tags found in issue text, de-duplicated in first-seen order."""
    text = f"{label} {description or ''} {notes or ''}".lower()
    tags: List[str] = []

    for signal in REPLACEMENT_SIGNALS + REPAIR_SIGNALS:
        if signal in text:
            tags.append(re.sub(r"\s+", "_", signal))

    if "unknown age" in text or "age unknown" in text:
        tags.append("unknown_age")
    if AGE_PATTERN.search(text):
        tags.append("aged")

    return list(dict.fromkeys(tags))


def _any_tag(tags: List[str], *needles: str) -> bool:
    return any(needle in tag for tag in tags for needle in needles)


def recommend_remedy(
    label: str,
    description: Optional[str] = None,
    tags: Optional[List[str]] = None,
) -> Optional[RemedyRecommendation]:
    """Recommend repair or replace for a detected issue.

    Returns:
        RemedyRecommendation for issue types with rules, otherwise None.
    """
    if detect_issue_type(label, description) not in FAUCET_ISSUE_TYPES:
        return None

    tags = [t.lower() for t in (tags if tags is not None else extract_condition_tags(label, description))]
    text = f"{label} {description or ''}".lower()

    has_corrosion = _any_tag(tags, "corrosion", "corroded", "rust")
    has_mineral = _any_tag(tags, "mineral", "calcium", "buildup")
    has_staining = _any_tag(tags, "stain", "discolor")
    is_aged = _any_tag(tags, "aged", "old", "dated", "outdated", "worn")
    has_unknown_age = _any_tag(tags, "unknown_age")
    has_cracking = _any_tag(tags, "crack", "broken")
    has_pitting = _any_tag(tags, "pitting")
    mentions_cartridge = "cartridge" in text or "washer" in text or "o-ring" in text

    if has_corrosion or has_mineral:
        rationale = []
        if has_corrosion:
            rationale.append("Visible corrosion indicates internal valve damage that cannot be reliably repaired.")
        if has_mineral:
            rationale.append("Mineral buildup often extends into valve body, making cartridge replacement ineffective.")
        return RemedyRecommendation(Remedy.REPLACE, 0.85, rationale)

    if (has_staining or is_aged) and not mentions_cartridge:
        rationale = []
        if has_staining:
            rationale.append("Stained/discolored fixture suggests age and potential internal wear.")
        if is_aged:
            rationale.append("Older fixture likely has worn internal components beyond just the cartridge.")
        return RemedyRecommendation(Remedy.REPLACE, 0.75, rationale)

    if has_unknown_age:
        return RemedyRecommendation(
            Remedy.REPLACE, 0.65, ["Age unknown - replacement recommended to ensure reliability."]
        )

    if has_cracking or has_pitting:
        rationale = []
        if has_cracking:
            rationale.append("Cracked faucet body cannot be repaired safely.")
        if has_pitting:
            rationale.append("Pitting indicates advanced corrosion - replacement needed.")
        return RemedyRecommendation(Remedy.REPLACE, 0.9, rationale)

    rationale = ["Standard drip likely resolved by cartridge/washer replacement."]
    if mentions_cartridge:
        rationale.append("Cartridge-style faucet can typically be serviced without full replacement.")
        return RemedyRecommendation(Remedy.REPAIR, 0.85, rationale)
    return RemedyRecommendation(Remedy.REPAIR, 0.8, rationale)
