"""
Content Identity Resolution

Content ids follow the format ``<category-prefix>-<sequence>[-V<variant-number>]``:

    SUM-01          summary
    CH-05-V2        career highlight 5, variant 2
    OV-P1-01        position 1 overview
    P1-B08-V1       position 1 bullet 8, variant 1

All variants of the same achievement share a base id (the id with its ``-V<n>``
suffix removed) and are mutually exclusive. Every other module derives base ids
through ``base_id()``; the suffix convention is not re-implemented elsewhere.
"""

import re
from dataclasses import dataclass
from typing import Optional

# Variant marker: "-V" followed by one or more digits at the very end of the id
VARIANT_SUFFIX = re.compile(r"-V(\d+)$")
# Stacked markers ("-V1-V2") are stripped together so base_id stays idempotent
VARIANT_SUFFIXES = re.compile(r"(?:-V\d+)+$")

SUMMARY = "summary"
HIGHLIGHT = "highlight"
POSITION_OVERVIEW = "position-overview"
POSITION_BULLET = "position-bullet"

_SUMMARY_ID = re.compile(r"^SUM-\d+$")
_HIGHLIGHT_ID = re.compile(r"^CH-\d+$")
_OVERVIEW_ID = re.compile(r"^OV-P(\d+)-\d+$")
_BULLET_ID = re.compile(r"^P(\d+)-B\d+$")


def base_id(content_id: str) -> str:
    """
    Strip a trailing variant marker from a content id.

    Examples:
        >>> base_id("CH-05-V2")
        'CH-05'
        >>> base_id("P1-B08-V10")
        'P1-B08'
        >>> base_id("CH-05")
        'CH-05'
        >>> base_id("CH-05-Vx")  # malformed suffix is left alone
        'CH-05-Vx'

    Stacked markers are removed together, so ``base_id(base_id(x)) == base_id(x)``.
    """
    return VARIANT_SUFFIXES.sub("", content_id)


def variant_number(content_id: str) -> Optional[int]:
    """Variant number of an id, or None for a base id."""
    match = VARIANT_SUFFIX.search(content_id)
    return int(match.group(1)) if match else None


@dataclass(frozen=True)
class ContentIdParts:
    """
    Structured view of a content id.

    Attributes:
        content_id: The id as given
        base_id: Id without variant suffix
        category: One of the category constants above, or None if the prefix is not recognised
        position_number: Position for overview/bullet ids, None otherwise
        variant: Variant number, None for base ids
    """

    content_id: str
    base_id: str
    category: Optional[str]
    position_number: Optional[int]
    variant: Optional[int]


def parse_content_id(content_id: str) -> ContentIdParts:
    """
    Break a content id into category, position and variant.

    Unknown prefixes are not an error: the category is reported as None so that
    callers can still allocate opaque ids supplied by the ranker.
    """
    base = base_id(content_id)
    category = None
    position_number = None
    overview_match = _OVERVIEW_ID.match(base)
    bullet_match = _BULLET_ID.match(base)

    if _SUMMARY_ID.match(base):
        category = SUMMARY
    elif _HIGHLIGHT_ID.match(base):
        category = HIGHLIGHT
    elif overview_match:
        category = POSITION_OVERVIEW
        position_number = int(overview_match.group(1))
    elif bullet_match:
        category = POSITION_BULLET
        position_number = int(bullet_match.group(1))

    return ContentIdParts(
        content_id=content_id,
        base_id=base,
        category=category,
        position_number=position_number,
        variant=variant_number(content_id),
    )
