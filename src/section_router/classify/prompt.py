"""Reviewer roster and classification prompt construction."""

from __future__ import annotations

from typing import Any

from section_router.ingest.sections import first_sentence, preview
from section_router.types import ReviewerDomain, Section

CROSS_CUTTING_REVIEWERS: frozenset[str] = frozenset({"fd-architecture", "fd-quality"})

_RESPONSE_EXAMPLE = """
{
  "sections": [
    {
      "section_id": 1,
      "assignments": [
        {"agent": "fd-safety", "relevance": "priority", "confidence": 0.95}
      ]
    }
  ]
}
""".lstrip()


def default_reviewers() -> list[ReviewerDomain]:
    return [
        ReviewerDomain("fd-safety", "Safety, trust, policy risk, abuse, and compliance impact."),
        ReviewerDomain("fd-correctness", "Functional correctness, invariants, and logic flaws."),
        ReviewerDomain("fd-performance", "Latency, throughput, scaling, and resource efficiency."),
        ReviewerDomain("fd-user-product", "User value, product behavior, and UX outcome quality."),
        ReviewerDomain("fd-game-design", "Systems balance, mechanics, progression, and play quality."),
    ]


def resolve_reviewers(items: list[str | dict[str, Any]] | None) -> list[ReviewerDomain] | None:
    """Build a roster override from names or `{name, description}` objects.

    Blank and repeated names are skipped. A known name without a description
    takes the default roster's description. Returns None when nothing usable
    remains, so callers fall back to the default roster.
    """

    if not items:
        return None

    known = {reviewer.name: reviewer.description for reviewer in default_reviewers()}
    roster: list[ReviewerDomain] = []
    seen: set[str] = set()
    for item in items:
        if isinstance(item, str):
            name, description = item.strip(), ""
        elif isinstance(item, dict):
            name = str(item.get("name") or "").strip()
            description = str(item.get("description") or "").strip()
        else:
            continue
        if not name or name in seen:
            continue
        roster.append(ReviewerDomain(name=name, description=description or known.get(name, "")))
        seen.add(name)
    return roster or None


def build_classification_prompt(
    sections: list[Section], reviewers: list[ReviewerDomain] | None = None
) -> str:
    """Render the prompt asking the oracle to label sections per reviewer."""

    roster = reviewers or default_reviewers()
    parts: list[str] = [
        "You classify markdown document sections for review routing.\n",
        "Assign each section to zero or more agents with:\n",
        "- relevance: priority | context\n",
        "- confidence: 0.0 to 1.0\n",
        "Only use the listed agent names.\n\n",
        "Agent domains:\n",
    ]
    parts.extend(f"- {reviewer.name}: {reviewer.description}\n" for reviewer in roster)

    parts.append("\nCross-cutting agents (optional):\n")
    parts.extend(f"- {name}\n" for name in sorted(CROSS_CUTTING_REVIEWERS))

    parts.append("\nSections:\n")
    for section in sections:
        heading = section.heading.strip() or "(untitled)"
        opening = first_sentence(section) or "(none)"
        body_preview = preview(section) or "(empty section body)"
        parts.append(
            f"\nSection {section.id}\n"
            f"Heading: {heading}\n"
            f"LineCount: {section.line_count}\n"
            f"FirstSentence: {opening}\n"
            "Preview:\n"
            f"{body_preview}\n"
        )

    parts.append("\nReturn JSON only (no markdown fences) with this schema:\n")
    parts.append(_RESPONSE_EXAMPLE)
    return "".join(parts)
