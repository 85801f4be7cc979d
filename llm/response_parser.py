"""
Parsing and repair of LLM JSON responses.

LLMs often break JSON:
- Add text before/after the object
- Wrap it in ```json fences
- Use Python literals (None/True/False) or trailing commas

extract_first_json() is the best-effort extraction primitive: it returns the
first balanced top-level JSON value in a text, or None.
parse_plan() turns a raw response into a validated StrategyPlan.
"""

import json
import re
from typing import Any, Iterator, Optional
import logging

from pydantic import ValidationError

from config import settings
from errors import AiProviderError, PlanValidationError
from data.models import StrategyPlan

logger = logging.getLogger(__name__)


class JSONParseError(AiProviderError):
    """Could not get JSON out of the response, even after repair"""
    default_message = "Respons AI bukan JSON yang valid"


_FENCE_OPEN = re.compile(r'^```(?:json)?\s*', re.IGNORECASE)
_FENCE_CLOSE = re.compile(r'\s*```$')


def extract_first_json(text: str) -> Optional[str]:
    """
    Returns the first balanced top-level JSON object/array in `text`.

    Markdown fences around the text are dropped first. The scan starts at the
    first '{' or '[' and tracks nesting depth, ignoring brackets inside
    double-quoted strings (backslash escapes respected).

    Returns:
        the JSON substring, or None if no balanced value is found
    """
    return next(_balanced_candidates(text), None)


def _balanced_candidates(text: str) -> Iterator[str]:
    """Balanced {...} / [...] spans, one per opening bracket, left to right."""
    if not text:
        return

    cleaned = _FENCE_CLOSE.sub('', _FENCE_OPEN.sub('', text.strip()))

    for start, ch in enumerate(cleaned):
        if ch in '{[':
            span = _balanced_span(cleaned, start)
            if span is not None:
                yield span


def _balanced_span(text: str, start: int) -> Optional[str]:
    depth = 0
    in_string = False
    escaped = False

    for i in range(start, len(text)):
        ch = text[i]

        if in_string:
            if escaped:
                escaped = False
            elif ch == '\\':
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch in '{[':
            depth += 1
        elif ch in '}]':
            depth -= 1
            if depth == 0:
                return text[start:i + 1]

    return None


def _loads_or_repair(candidate: str) -> Any:
    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        pass
    return json.loads(_repair_json(candidate))


def extract_json(text: str) -> Any:
    """
    Extracts JSON from an LLM response.

    Tries in order:
    1. Direct parse
    2. Contents of a ```json block
    3. Each balanced {...} / [...] in the text, left to right, with repair of
       common mistakes; the first object wins over earlier non-object values
    4. The widest {...} span, with repair

    Prose like "rencana [versi 1]" or "{umkmLevel}" before the real answer is
    skipped this way.

    Raises:
        JSONParseError: if nothing parses
    """
    if not text or not text.strip():
        raise JSONParseError("Respons AI kosong")

    # 1. Direct parse
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    # 2. Markdown code block
    code_block_match = re.search(r'```(?:json)?\s*([\s\S]*?)\s*```', text)
    if code_block_match:
        try:
            return json.loads(code_block_match.group(1))
        except json.JSONDecodeError:
            pass

    # 3. Balanced scan (+ repair)
    first_value = None
    for candidate in _balanced_candidates(text):
        try:
            value = _loads_or_repair(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(value, dict):
            return value
        if first_value is None:
            first_value = value

    if first_value is not None:
        return first_value

    # 4. Widest span (+ repair)
    wide_match = re.search(r'\{[\s\S]*\}', text)
    if wide_match:
        try:
            return _loads_or_repair(wide_match.group(0))
        except json.JSONDecodeError:
            pass

    raise JSONParseError("Tidak dapat mengekstrak JSON dari respons AI")


def _repair_json(json_str: str) -> str:
    """
    Fixes frequent JSON mistakes.

    - Trailing commas: {a: 1,} -> {a: 1}
    - Single quotes: {'a': 1} -> {"a": 1}
    - Python None -> null
    - Python True/False -> true/false
    """
    json_str = re.sub(r',\s*}', '}', json_str)
    json_str = re.sub(r',\s*]', ']', json_str)

    # Single quotes -> double quotes (careful with apostrophes)
    json_str = re.sub(r"(?<![\"\\])'([^']*)'(?![\"\\])", r'"\1"', json_str)

    json_str = re.sub(r'\bNone\b', 'null', json_str)
    json_str = re.sub(r'\bTrue\b', 'true', json_str)
    json_str = re.sub(r'\bFalse\b', 'false', json_str)

    return json_str


def _normalize_enums(data: dict) -> None:
    """Lower-cases enum-valued strings in place ("Tinggi" -> "tinggi")."""
    if isinstance(data.get('umkmLevel'), str):
        data['umkmLevel'] = data['umkmLevel'].strip().lower()
    quick_wins = data.get('quickWins')
    if not isinstance(quick_wins, list):
        return
    for item in quick_wins:
        if not isinstance(item, dict):
            continue
        for key in ('impact', 'effort'):
            if isinstance(item.get(key), str):
                item[key] = item[key].strip().lower()


def _summarize_errors(error: ValidationError, limit: int = 5) -> str:
    parts = []
    for err in error.errors()[:limit]:
        loc = ".".join(str(p) for p in err['loc'])
        parts.append(f"{loc}: {err['msg']}")
    more = len(error.errors()) - limit
    if more > 0:
        parts.append(f"(+{more} lainnya)")
    return "; ".join(parts)


def parse_plan(
    raw_response: str,
    quick_wins_range: tuple[int, int] = (settings.quick_wins_min, settings.quick_wins_max),
    initiatives_range: tuple[int, int] = (settings.initiatives_min, settings.initiatives_max),
) -> StrategyPlan:
    """
    Parses and validates a strategy plan from an LLM response.

    Item counts: fewer than the minimum is a validation failure; extra items
    beyond the maximum are dropped.

    Args:
        raw_response: raw LLM text
        quick_wins_range: (min, max) quick wins
        initiatives_range: (min, max) initiatives

    Returns:
        StrategyPlan

    Raises:
        JSONParseError: no JSON in the response
        PlanValidationError: JSON does not satisfy the plan contract
    """
    logger.debug(f"Parsing LLM response ({len(raw_response or '')} chars)")

    try:
        data = extract_json(raw_response)
    except JSONParseError as e:
        preview = raw_response[:500] + "..." if len(raw_response) > 500 else raw_response
        logger.error(f"Could not extract JSON: {e}. Response: {preview}")
        raise

    if not isinstance(data, dict):
        raise PlanValidationError(f"Rencana harus berupa objek JSON, bukan {type(data).__name__}")

    _normalize_enums(data)

    try:
        plan = StrategyPlan.model_validate(data)
    except ValidationError as e:
        summary = _summarize_errors(e)
        logger.warning(f"Plan validation failed: {summary}")
        raise PlanValidationError(f"Format rencana strategi tidak valid: {summary}")

    plan = _enforce_counts(plan, quick_wins_range, initiatives_range)

    logger.info(
        f"Plan parsed: {len(plan.diagnosis)} diagnosis, {len(plan.quick_wins)} quick wins, "
        f"{len(plan.initiatives)} initiatives"
    )
    return plan


def _enforce_counts(
    plan: StrategyPlan,
    quick_wins_range: tuple[int, int],
    initiatives_range: tuple[int, int],
) -> StrategyPlan:
    qw_min, qw_max = quick_wins_range
    in_min, in_max = initiatives_range

    if len(plan.quick_wins) < qw_min:
        raise PlanValidationError(
            f"Quick wins terlalu sedikit: {len(plan.quick_wins)} (minimal {qw_min})"
        )
    if len(plan.initiatives) < in_min:
        raise PlanValidationError(
            f"Inisiatif terlalu sedikit: {len(plan.initiatives)} (minimal {in_min})"
        )

    updates = {}
    if len(plan.quick_wins) > qw_max:
        logger.warning(f"Dropping {len(plan.quick_wins) - qw_max} extra quick wins")
        updates['quick_wins'] = plan.quick_wins[:qw_max]
    if len(plan.initiatives) > in_max:
        logger.warning(f"Dropping {len(plan.initiatives) - in_max} extra initiatives")
        updates['initiatives'] = plan.initiatives[:in_max]

    return plan.model_copy(update=updates) if updates else plan
