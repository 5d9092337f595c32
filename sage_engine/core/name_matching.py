"""Word-boundary-safe literal name matching and replacement.

The mechanical layer of propagation. Names are matched literally:

- Regex metacharacters in the name are escaped
- Both ends are anchored to word boundaries ("Aldric" never matches inside
  "Aldricson", but does match "Aldric's")
- Every occurrence is counted and replaced
- Matching is case-sensitive, so "ALDRIC" is a different name
"""

import re

from pydantic import BaseModel

from sage_engine.core.schemas_propagation import ContentSection


class SectionScanResult(BaseModel):
    """Matches found in one section (with replacement, when requested)."""

    section_id: str
    match_count: int
    updated_content: str | None = None


def build_name_pattern(name: str) -> re.Pattern[str]:
    """Compile a literal, word-bounded pattern for a name."""
    return re.compile(rf"\b{re.escape(name)}\b")


def count_name_matches(content: str, name: str) -> int:
    if not content or not name:
        return 0
    return len(build_name_pattern(name).findall(content))


def replace_name_in_content(content: str, old_name: str, new_name: str) -> tuple[str, int]:
    """
    Replace every bounded occurrence of old_name with new_name.

    Args:
        content: Text to rewrite
        old_name: Literal name to find
        new_name: Replacement text (inserted literally, no backreferences)

    Returns:
        (updated content, number of replacements)
    """
    if not content or not old_name:
        return content, 0

    return build_name_pattern(old_name).subn(lambda _match: new_name, content)


def scan_sections_for_name(
    sections: list[ContentSection],
    name: str,
    new_name: str | None = None,
) -> list[SectionScanResult]:
    """
    Find the sections that mention a name.

    When new_name is given, each result also carries the rewritten content.
    Sections without a match are left out. Input order is preserved.
    """
    if not sections or not name:
        return []

    pattern = build_name_pattern(name)
    results: list[SectionScanResult] = []

    for section in sections:
        match_count = len(pattern.findall(section.content))
        if match_count == 0:
            continue

        result = SectionScanResult(section_id=section.section_id, match_count=match_count)
        if new_name is not None:
            result.updated_content = pattern.sub(lambda _match: new_name, section.content)
        results.append(result)

    return results
