"""
Remedy Annotation Resolver.

Contractors record repair-vs-replace decisions inline in job notes using a
narrow marker protocol:

    <label> (ACTION: REPAIR)
    <label> (ACTION: REPLACE)

Matching is case-insensitive and tolerates whitespace inside the
parenthesis. ``<label>`` is the text since the previous line break, ``;``,
``,``, ``(``, ``)`` or bullet character; a leading ``-`` or ``1.`` list
marker is stripped. The label is mapped to an issue type by keyword; labels
with no known keyword are ignored. When several markers resolve to the same
issue type, the last one wins.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional, Tuple

import structlog

from models.draft import ScopeSection

logger = structlog.get_logger(__name__)


class Remedy(str, Enum):
    """Contractor's decision for an issue."""

    REPAIR = "repair"
    REPLACE = "replace"


RemedySelections = Dict[str, Remedy]
RemedyLookup = Callable[[str, Remedy], List[str]]


# =============================================================================
# Marker grammar
# =============================================================================

MARKER_PATTERN = re.compile(
    r"(?P<label>[^\n;,()•*]*?)\s*\(\s*action\s*:\s*(?P<action>repair|replace)\s*\)",
    re.IGNORECASE,
)
LIST_PREFIX_PATTERN = re.compile(r"^\s*(?:[-–]|\d+[.)])\s*")

# Keyword -> issue type; matched at a word start within the label
DEFAULT_ISSUE_KEYWORDS: Dict[str, str] = {
    "faucet": "leaking_faucet",
    "tap": "leaking_faucet",
    "toilet": "running_toilet",
    "disposal": "broken_disposal",
    "angle stop": "leaking_angle_stop",
    "shutoff": "leaking_angle_stop",
    "shut-off": "leaking_angle_stop",
    "water heater": "water_heater",
}

ISSUE_TITLES: Dict[str, str] = {
    "leaking_faucet": "Faucet",
    "running_toilet": "Toilet",
    "broken_disposal": "Garbage Disposal",
    "leaking_angle_stop": "Angle Stop",
    "water_heater": "Water Heater",
}

# Base scope items that only make sense when something is being repaired
REPAIR_ONLY_KEYWORDS = ("repair", "cartridge", "washer")


# =============================================================================
# Remedy templates
# =============================================================================

REMEDY_SCOPE_TEMPLATES: Dict[Tuple[str, Remedy], List[str]] = {
    ("leaking_faucet", Remedy.REPAIR): [
        "Turn off water supply at angle stops or main shutoff.",
        "Disassemble faucet handle and access cartridge/stem.",
        "Replace cartridge, washer, and/or O-rings as needed.",
        "Reassemble faucet and restore water supply.",
        "Test for leaks and proper operation.",
        "Check angle stop valves for function.",
        "Clean up work area.",
    ],
    ("leaking_faucet", Remedy.REPLACE): [
        "Turn off water supply and disconnect supply lines.",
        "Remove existing faucet and clean mounting surface.",
        "Install new faucet (customer supplied or per allowance).",
        "Replace supply lines with new braided stainless connectors.",
        "Apply silicone sealant as needed at deck plate.",
        "Test for leaks at all connections.",
        "Dispose of old faucet and materials.",
        "Clean up work area.",
    ],
    ("running_toilet", Remedy.REPAIR): [
        "Turn off water supply at toilet angle stop.",
        "Replace flapper and adjust or replace fill valve as needed.",
        "Adjust float and chain for proper tank fill level.",
        "Restore water supply and test flush cycle.",
        "Clean up work area.",
    ],
    ("running_toilet", Remedy.REPLACE): [
        "Turn off water supply and disconnect supply line.",
        "Remove existing toilet and wax ring; inspect flange.",
        "Install new toilet with new wax ring and closet bolts.",
        "Install new braided stainless supply line.",
        "Test for leaks and proper flush operation.",
        "Dispose of old toilet and materials.",
        "Clean up work area.",
    ],
    ("broken_disposal", Remedy.REPAIR): [
        "Disconnect power to disposal at switch or breaker.",
        "Clear jam and reset disposal overload.",
        "Inspect drain connections and tighten as needed.",
        "Restore power and test operation.",
        "Clean up work area.",
    ],
    ("broken_disposal", Remedy.REPLACE): [
        "Disconnect power and drain connections to existing disposal.",
        "Remove existing disposal and mounting assembly.",
        "Install new disposal (customer supplied or per allowance).",
        "Reconnect drain and dishwasher connections.",
        "Restore power and test for leaks and operation.",
        "Dispose of old disposal and materials.",
        "Clean up work area.",
    ],
    ("leaking_angle_stop", Remedy.REPAIR): [
        "Turn off main water supply.",
        "Tighten packing nut and replace stem packing as needed.",
        "Restore water supply and test for leaks.",
        "Clean up work area.",
    ],
    ("leaking_angle_stop", Remedy.REPLACE): [
        "Turn off main water supply and drain lines.",
        "Remove existing angle stop valve.",
        "Install new quarter-turn angle stop valve.",
        "Replace supply line with new braided stainless connector.",
        "Restore water supply and test for leaks.",
        "Clean up work area.",
    ],
    ("water_heater", Remedy.REPAIR): [
        "Shut off power or gas and water supply to water heater.",
        "Diagnose and replace failed component (element, thermostat, or thermocouple).",
        "Flush tank and check temperature/pressure relief valve.",
        "Restore supply and verify heating operation.",
        "Clean up work area.",
    ],
    ("water_heater", Remedy.REPLACE): [
        "Shut off power or gas and water supply; drain existing water heater.",
        "Disconnect and remove existing water heater.",
        "Install new water heater per manufacturer instructions and local code.",
        "Install new temperature/pressure relief valve and discharge line.",
        "Reconnect supply lines and venting; restore power or gas.",
        "Test for leaks and verify heating operation.",
        "Haul away and dispose of old water heater.",
        "Clean up work area.",
    ],
}

GENERIC_REMEDY_SCOPE: Dict[Remedy, List[str]] = {
    Remedy.REPAIR: [
        "Diagnose issue and perform repair.",
        "Test and verify repair.",
        "Clean up work area.",
    ],
    Remedy.REPLACE: [
        "Remove existing fixture or component.",
        "Install replacement (customer supplied or per allowance).",
        "Test for proper operation.",
        "Dispose of old materials and clean up work area.",
    ],
}


def get_remedy_scope_items(issue_type: str, remedy: Remedy) -> List[str]:
    """Default remedy template lookup keyed by (issue type, remedy)."""
    items = REMEDY_SCOPE_TEMPLATES.get((issue_type, remedy))
    if items is None:
        items = GENERIC_REMEDY_SCOPE[remedy]
    return list(items)


def issue_title(issue_type: str) -> str:
    return ISSUE_TITLES.get(issue_type) or issue_type.replace("_", " ").title()


# =============================================================================
# Parsing
# =============================================================================


def _compile_keywords(issue_keywords: Mapping[str, str]) -> List[Tuple[re.Pattern, str]]:
    return [
        (re.compile(r"\b" + re.escape(keyword.lower())), issue_type)
        for keyword, issue_type in issue_keywords.items()
    ]


def resolve_issue_type(
    label: str,
    issue_keywords: Mapping[str, str] = DEFAULT_ISSUE_KEYWORDS,
) -> Optional[str]:
    """Map a marker label to an issue type.

    When several keywords occur, the one ending closest to the marker wins,
    so "Toilet check: faucet" resolves to the faucet.
    """
    text = label.lower()
    best: Optional[Tuple[int, str]] = None
    for pattern, issue_type in _compile_keywords(issue_keywords):
        for match in pattern.finditer(text):
            if best is None or match.end() > best[0]:
                best = (match.end(), issue_type)
    return best[1] if best else None


def parse_remedy_selections(
    notes: Optional[str],
    issue_keywords: Mapping[str, str] = DEFAULT_ISSUE_KEYWORDS,
) -> RemedySelections:
    """Extract remedy selections from free-text notes.

    Args:
        notes: Contractor notes, possibly containing ACTION markers.
        issue_keywords: Keyword to issue type mapping.

    Returns:
        Issue type -> Remedy, in order of first appearance.
    """
    selections: RemedySelections = {}
    if not notes:
        return selections

    for match in MARKER_PATTERN.finditer(notes):
        label = LIST_PREFIX_PATTERN.sub("", match.group("label")).strip()
        issue_type = resolve_issue_type(label, issue_keywords) if label else None
        if issue_type is None:
            logger.debug("remedy_marker_unrecognized", label=label)
            continue
        selections[issue_type] = Remedy(match.group("action").lower())

    if selections:
        logger.info(
            "remedy_selections_parsed",
            selections={k: v.value for k, v in selections.items()},
        )
    return selections


# =============================================================================
# Scope generation
# =============================================================================


@dataclass
class RemedyScope:
    """Scope items and titled sections generated from remedy selections."""

    scope_items: List[str] = field(default_factory=list)
    scope_sections: List[ScopeSection] = field(default_factory=list)


def generate_remedy_scope_items(
    selections: RemedySelections,
    lookup: RemedyLookup = get_remedy_scope_items,
) -> RemedyScope:
    """Expand selections into scope items and one section per issue."""
    result = RemedyScope()
    seen = set()

    for issue_type, remedy in selections.items():
        items = lookup(issue_type, remedy)
        if not items:
            continue

        suffix = "Replacement" if remedy == Remedy.REPLACE else "Repair"
        result.scope_sections.append(
            ScopeSection(title=f"{issue_title(issue_type)} {suffix}", items=list(items))
        )
        for item in items:
            if item not in seen:
                seen.add(item)
                result.scope_items.append(item)

    return result


def _is_repair_only(item: str) -> bool:
    text = item.lower()
    return any(keyword in text for keyword in REPAIR_ONLY_KEYWORDS)


def compose_base_scope(
    base_scope: List[str],
    selections: RemedySelections,
    remedy_scope: RemedyScope,
) -> List[str]:
    """Combine template base scope with remedy scope.

    When any issue is marked for replacement, generic base items mentioning
    repair, cartridge or washer are dropped; a repaired issue keeps that
    work through its own remedy items. Remedy items come first.
    """
    base = list(base_scope)
    if Remedy.REPLACE in selections.values():
        kept = [item for item in base if not _is_repair_only(item)]
        if len(kept) != len(base):
            logger.info("remedy_base_scope_filtered", removed=len(base) - len(kept))
        base = kept

    remedy_items = set(remedy_scope.scope_items)
    return list(remedy_scope.scope_items) + [item for item in base if item not in remedy_items]
