"""
Visual Explorer - Element Catalog

Parses a uiautomator dump into the list of elements the explorer may tap.
"""

import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from utils.error_handler import ParseError
from .models import Bounds, InteractiveElement
from .screen_identity import element_hash

logger = logging.getLogger(__name__)

# uiautomator bounds format: "[left,top][right,bottom]"
BOUNDS_PATTERN = re.compile(r"^\[(-?\d+),(-?\d+)\]\[(-?\d+),(-?\d+)\]$")


@dataclass
class CatalogResult:
    """Interactive candidates for one screen plus the counts recorded on it"""
    elements: List[InteractiveElement] = field(default_factory=list)
    element_count: int = 0
    clickable_count: int = 0


def parse_bounds(bounds_str: Optional[str]) -> Optional[Bounds]:
    """Parse a bounds attribute, returning None when it is missing or malformed"""
    if not bounds_str:
        return None
    match = BOUNDS_PATTERN.match(bounds_str.strip())
    if not match:
        return None
    left, top, right, bottom = (int(v) for v in match.groups())
    return Bounds(left=left, top=top, right=right, bottom=bottom)


def _is_ignored(class_name: str, ignore_class_substrings: Iterable[str]) -> bool:
    return any(sub and sub in class_name for sub in ignore_class_substrings)


def parse_elements(
    xml_text: str,
    screen_structural_hash: str,
    ignore_class_substrings: Iterable[str] = (),
) -> CatalogResult:
    """
    Extract the tappable candidates from a UI dump

    Nodes without a class or valid bounds are skipped. Only clickable nodes
    survive, minus those whose class contains an ignore substring. Nodes with
    the same class and box collapse into one candidate.

    Raises:
        ParseError: If the dump is not well-formed XML
    """
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        logger.error(f"[ElementCatalog] Malformed UI dump: {e}")
        raise ParseError(f"Malformed UI dump: {e}", source="ui_dump") from e

    ignore = list(ignore_class_substrings)
    result = CatalogResult()
    seen = set()

    for node in root.iter("node"):
        class_name = node.get("class", "")
        bounds = parse_bounds(node.get("bounds"))
        if not class_name or bounds is None:
            continue

        result.element_count += 1
        if node.get("clickable") != "true":
            continue
        result.clickable_count += 1

        if _is_ignored(class_name, ignore):
            continue

        key = (class_name, bounds.left, bounds.top, bounds.right, bounds.bottom)
        if key in seen:
            continue
        seen.add(key)

        result.elements.append(
            InteractiveElement(
                class_name=class_name,
                bounds=bounds,
                clickable=True,
                element_hash=element_hash(screen_structural_hash, *key),
                text=node.get("text", ""),
                resource_id=node.get("resource-id", ""),
                content_desc=node.get("content-desc", ""),
            )
        )

    logger.debug(
        f"[ElementCatalog] {result.element_count} elements, {result.clickable_count} clickable, "
        f"{len(result.elements)} candidates"
    )
    return result
