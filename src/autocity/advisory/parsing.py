"""Prompt rendering, response parsing and the rule-based local analysis."""

from __future__ import annotations

import json
import re

from autocity.models import AdvisoryResult, CityAnalysis

_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")

KEYWORDS: tuple[tuple[str, str], ...] = (
    ("road", "road"),
    ("housing", "residential"),
    ("residential", "residential"),
    ("power", "power"),
    ("electric", "power"),
    ("commercial", "commercial"),
    ("industrial", "industrial"),
    ("factory", "industrial"),
    ("school", "school"),
    ("hospital", "hospital"),
    ("police", "police"),
    ("park", "park"),
)
MAX_PRIORITIES = 3

_STAGE_LABELS = {"early": "early", "growth": "growing", "mature": "mature"}
_COUNTED_TYPES = ("residential", "commercial", "industrial", "road", "power", "school", "hospital", "police", "park")

SYSTEM_PROMPT = (
    "You are an experienced city planner. Analyse the city's situation and recommend what to build next. "
    "Answer concisely."
)


class AdvisoryResponseError(ValueError):
    """Raised when an advisory reply cannot be turned into a structured result."""


def build_analysis_prompt(analysis: CityAnalysis) -> str:
    counts = "\n".join(f"- {building_type}: {analysis.count(building_type)}" for building_type in _COUNTED_TYPES)
    stage = _STAGE_LABELS.get(analysis.development_stage.value, analysis.development_stage.value)
    return f"""Analyse the following city and suggest how it should develop.

City overview:
- Population: {analysis.population:g}
- Money: ${analysis.money:g}
- Happiness: {analysis.happiness:g}%
- Power balance: {analysis.power_balance:g}

Structures:
{counts}

Development stage: {stage}
Available budget: ${analysis.available_budget:g}

Cover:
1. The main problems and strengths
2. Where development should focus next
3. Concrete build recommendations, highest priority first
4. Risks and how to mitigate them

Reply in JSON with these fields:
{{
  "analysis": "situation summary",
  "priorities": ["building type 1", "building type 2", "building type 3"],
  "suggestions": "detailed recommendations",
  "risks": "risk notes"
}}
Use these building type names: {", ".join(_COUNTED_TYPES)}."""


def extract_priorities(text: str) -> list[str]:
    """Keyword scan in table order, returning at most three distinct building types."""
    lowered = text.lower()
    priorities: list[str] = []
    for keyword, building_type in KEYWORDS:
        if len(priorities) >= MAX_PRIORITIES:
            break
        if keyword in lowered and building_type not in priorities:
            priorities.append(building_type)
    return priorities


def parse_advisory_content(text: str) -> AdvisoryResult:
    match = _JSON_BLOCK.search(text)
    if match is None:
        raise AdvisoryResponseError("advisory reply carries no JSON object")

    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise AdvisoryResponseError(f"advisory reply is not valid JSON: {exc}") from exc

    if not isinstance(parsed, dict):
        raise AdvisoryResponseError("advisory reply JSON is not an object")

    raw_priorities = parsed.get("priorities")
    if isinstance(raw_priorities, list) and all(isinstance(item, str) for item in raw_priorities):
        priorities = [item.strip().lower() for item in raw_priorities if item.strip()]
    else:
        priorities = extract_priorities(text)

    return AdvisoryResult(
        succeeded=True,
        analysis=str(parsed.get("analysis") or "Analysis pending."),
        priorities=priorities,
        suggestions=str(parsed.get("suggestions") or "Recommendations pending."),
        risks=str(parsed.get("risks") or "No risks reported."),
        raw_response=text,
    )


def fallback_analysis(analysis: CityAnalysis) -> AdvisoryResult:
    """Rule-based stand-in used whenever the external advisory is unavailable."""
    issue = "The city is developing well"
    pick = "residential"
    if analysis.power_balance < 0:
        issue = "Power supply is short; build a power plant"
        pick = "power"
    elif analysis.happiness < 40:
        issue = "Residents are unhappy; improve living conditions"
        pick = "park"
    elif analysis.population > analysis.count("residential") * 4:
        issue = "Housing is tight; add residential zones"
        pick = "residential"

    return AdvisoryResult(
        succeeded=False,
        analysis=issue,
        priorities=[pick, "road", "commercial"],
        suggestions="Fix infrastructure first, then grow the economy and improve quality of life.",
        risks="Keep resources balanced to avoid overextending the budget.",
        raw_response="local analysis",
    )
