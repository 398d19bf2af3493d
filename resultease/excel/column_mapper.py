from __future__ import annotations

import logging
import math
import re
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from rapidfuzz.distance import Levenshtein

from ..models.mapping import (
    SUBJECT_PREFIX,
    ColumnMapping,
    FieldType,
    MappingCheck,
    MappingResult,
    MappingSuggestion,
)

"""Heuristic column-to-field mapping.

Each header is normalized (trimmed, lower-cased, inner whitespace collapsed)
and tested against FIELD_PATTERNS. A pattern hit scores PATTERN_CONFIDENCE;
otherwise the header is scored against every unclaimed field label with a
normalized Levenshtein similarity. Fields are claimed greedily in header order.

Scores above AUTO_ACCEPT auto-map. Columns whose sample is mostly numeric and
that match no known field become subject columns. Scores in
[SUGGEST_MIN, AUTO_ACCEPT] only produce a suggestion. The result is advisory;
callers accept or override suggestions before transformation.
"""

__all__ = [
    "REQUIRED_FIELDS",
    "OPTIONAL_FIELDS",
    "FIELD_PATTERNS",
    "FIELD_LABELS",
    "normalize_header",
    "normalize_subject_name",
    "levenshtein_similarity",
    "marks_transformer",
    "build_mapping",
    "auto_map_columns",
    "validate_mappings",
    "accept_suggestion",
    "apply_overrides",
]

logger = logging.getLogger(__name__)

REQUIRED_FIELDS: tuple[str, ...] = ("student_name", "roll_number")
OPTIONAL_FIELDS: tuple[str, ...] = (
    "class",
    "section",
    "father_name",
    "mother_name",
    "date_of_birth",
    "total_marks",
    "percentage",
    "grade",
    "rank",
)

PATTERN_CONFIDENCE = 0.8
AUTO_ACCEPT = 0.6
SUGGEST_MIN = 0.3
NUMERIC_RATIO = 0.7
SAMPLE_SIZE = 50

_NO = r"(no|num|number)\.?"

# Field -> patterns, tested in this order; the first field with a hit wins.
FIELD_PATTERNS: dict[str, tuple[re.Pattern[str], ...]] = {
    "student_name": (
        re.compile(r"^(student.*name|name.*student|student|name|pupil|learner)$"),
        re.compile(r"^(full.*name|complete.*name|candidate.*name)$"),
        re.compile(r"^(first.*name|last.*name)$"),
    ),
    "roll_number": (
        re.compile(rf"^(roll.*{_NO}|roll|admission.*{_NO}|id|student.*id)$"),
        re.compile(rf"^(reg.*{_NO}|registration|registration.*{_NO})$"),
        re.compile(r"^(index.*no\.?|index)$"),
    ),
    "class": (
        re.compile(r"^(class|standard|std|grade|level)$"),
        re.compile(r"^(class.*name|class.*num)$"),
    ),
    "section": (
        re.compile(r"^(section|sec|division|div)$"),
        re.compile(r"^(class.*section|sec.*name)$"),
    ),
    "father_name": (re.compile(r"^(father.*name|father|guardian.*name|guardian)$"),),
    "mother_name": (re.compile(r"^(mother.*name|mother)$"),),
    "date_of_birth": (re.compile(r"^(date.*of.*birth|dob|d\.o\.b\.?|birth.*date)$"),),
    "total_marks": (
        re.compile(r"^(total.*mark.*|total.*score|total|grand.*total)$"),
        re.compile(r"^(sum.*mark.*|aggregate|overall)$"),
    ),
    "percentage": (
        re.compile(r"^(percent|percentage|%|per)$"),
        re.compile(r"^(percent.*mark.*|mark.*percent)$"),
    ),
    "grade": (
        re.compile(r"^(grade|letter.*grade|final.*grade)$"),
        re.compile(r"^(class.*grade|overall.*grade)$"),
    ),
    "rank": (
        re.compile(r"^(rank|position|pos|standing)$"),
        re.compile(r"^(class.*rank|overall.*rank)$"),
    ),
}

# Human-readable label each field is compared against by similarity.
FIELD_LABELS: dict[str, str] = {f: f.replace("_", " ") for f in (*REQUIRED_FIELDS, *OPTIONAL_FIELDS)}

NUMBER_FIELDS = frozenset({"total_marks", "percentage", "rank"})
DATE_FIELDS = frozenset({"date_of_birth"})

_WS_RE = re.compile(r"\s+")
_SUBJECT_STRIP_RE = re.compile(r"[^a-z0-9\s]")

Similarity = Callable[[str, str], float]


def normalize_header(header: str) -> str:
    return _WS_RE.sub(" ", str(header).strip().lower())


def normalize_subject_name(header: str) -> str:
    cleaned = _SUBJECT_STRIP_RE.sub("", str(header).strip().lower())
    return _WS_RE.sub("_", cleaned.strip())


def levenshtein_similarity(a: str, b: str) -> float:
    """1 - edit distance / length of the longer string (1.0 for two empty strings)."""
    return float(Levenshtein.normalized_similarity(a, b))


# Value transformers

def _to_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _to_number(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    try:
        number = float(str(value).strip() or "0")
    except ValueError:
        return 0.0
    return number if math.isfinite(number) else 0.0


_ABSENT = frozenset({"absent", "ab", "a"})
_PASS = frozenset({"pass", "p"})
_FAIL = frozenset({"fail", "f"})


def marks_transformer(value: Any) -> float:
    """Raw subject cell -> mark in 0-100.

    Blank/absent/ab -> 0, pass -> 40, fail -> 0, unparsable -> 0; numbers clamp to 0-100.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    text = str(value).strip().lower()
    if text == "" or text in _ABSENT or text in _FAIL:
        return 0.0
    if text in _PASS:
        return 40.0
    try:
        number = float(text)
    except ValueError:
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return max(0.0, min(100.0, number))


def _field_type(field: str) -> FieldType:
    if field.startswith(SUBJECT_PREFIX) or field in NUMBER_FIELDS:
        return FieldType.NUMBER
    if field in DATE_FIELDS:
        return FieldType.DATE
    return FieldType.STRING


def _field_transformer(field: str) -> Callable[[Any], Any]:
    if field.startswith(SUBJECT_PREFIX):
        return marks_transformer
    if field in NUMBER_FIELDS:
        return _to_number
    return _to_text


def build_mapping(source_header: str, target_field: str) -> ColumnMapping:
    """Accepted mapping for a header; ``target_field`` is a known field or ``subject_<name>``."""
    if target_field not in FIELD_LABELS and not target_field.startswith(SUBJECT_PREFIX):
        raise ValueError(f"Unknown target field: {target_field}")
    return ColumnMapping(
        source_header=source_header,
        target_field=target_field,
        required=target_field in REQUIRED_FIELDS,
        data_type=_field_type(target_field),
        transformer=_field_transformer(target_field),
    )


def _is_numeric_cell(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return math.isfinite(value)
    try:
        return math.isfinite(float(str(value).strip()))
    except ValueError:
        return False


def _looks_numeric(header: str, sample_rows: Sequence[Mapping[str, Any]]) -> bool:
    values = [r.get(header) for r in sample_rows[:SAMPLE_SIZE]]
    values = [v for v in values if v is not None and v != ""]
    if not values:
        return False
    numeric = sum(1 for v in values if _is_numeric_cell(v))
    return numeric / len(values) > NUMERIC_RATIO


def _matches_any_field(normalized: str, patterns: Mapping[str, Sequence[re.Pattern[str]]]) -> bool:
    return any(p.match(normalized) for pats in patterns.values() for p in pats)


def _unique_subject_field(header: str, index: int, used: set[str]) -> str:
    base = normalize_subject_name(header) or f"column_{index + 1}"
    key, n = base, 2
    while key in used:
        key = f"{base}_{n}"
        n += 1
    used.add(key)
    return f"{SUBJECT_PREFIX}{key}"


def _confidence(mappings: Sequence[ColumnMapping]) -> float:
    mapped = sum(1 for m in mappings if m.required)
    return round(mapped / len(REQUIRED_FIELDS), 2)


def auto_map_columns(
    headers: Sequence[str],
    sample_rows: Sequence[Mapping[str, Any]] = (),
    *,
    patterns: Mapping[str, Sequence[re.Pattern[str]]] = FIELD_PATTERNS,
    similarity: Similarity = levenshtein_similarity,
) -> MappingResult:
    """Propose mappings for ``headers`` using ``sample_rows`` to spot subject columns."""
    mappings: list[ColumnMapping] = []
    suggestions: list[MappingSuggestion] = []
    unmapped: list[str] = []
    claimed: set[str] = set()
    subject_keys: set[str] = set()

    for index, header in enumerate(headers):
        normalized = normalize_header(header)
        available = [f for f in patterns if f not in claimed]

        best_field: str | None = None
        best_score = 0.0
        for field in available:
            if any(p.match(normalized) for p in patterns[field]):
                best_field, best_score = field, PATTERN_CONFIDENCE
                break
        if best_field is None:
            for field in available:
                score = similarity(normalized, FIELD_LABELS.get(field, field.replace("_", " ")))
                if score > best_score:
                    best_field, best_score = field, score

        if best_field is not None and best_score > AUTO_ACCEPT:
            mappings.append(build_mapping(header, best_field))
            claimed.add(best_field)
        elif _looks_numeric(header, sample_rows) and not _matches_any_field(normalized, patterns):
            mappings.append(build_mapping(header, _unique_subject_field(header, index, subject_keys)))
        elif best_field is not None and best_score >= SUGGEST_MIN:
            suggestions.append(
                MappingSuggestion(
                    source_header=header,
                    suggested_field=best_field,
                    confidence=round(best_score, 2),
                    reason=f"Column name similarity to {best_field}",
                )
            )
            unmapped.append(header)
        else:
            unmapped.append(header)

    missing = [f for f in REQUIRED_FIELDS if f not in claimed]
    for field in missing:
        label = FIELD_LABELS[field]
        best_header, best_score = None, SUGGEST_MIN
        for header in unmapped:
            score = similarity(normalize_header(header), label)
            if score > best_score:
                best_header, best_score = header, score
        if best_header is not None:
            suggestions.append(
                MappingSuggestion(
                    source_header=best_header,
                    suggested_field=field,
                    confidence=round(best_score, 2),
                    reason=f"Suggested for missing required field: {field}",
                )
            )

    result = MappingResult(
        mappings=mappings,
        confidence=_confidence(mappings),
        suggestions=suggestions,
        unmapped_headers=unmapped,
        missing_required_fields=missing,
    )
    logger.debug(
        f"mapper: mapped={len(mappings)} subjects={len(result.subject_mappings)} "
        f"suggestions={len(suggestions)} missing={missing}"
    )
    return result


def validate_mappings(mappings: Sequence[ColumnMapping], headers: Sequence[str]) -> MappingCheck:
    """Check a (possibly caller-edited) mapping list before transformation."""
    errors: list[str] = []
    warnings: list[str] = []

    for m in mappings:
        if m.source_header not in headers:
            errors.append(f"Mapped column '{m.source_header}' not found in headers")

    targets = [m.target_field for m in mappings]
    missing = [f for f in REQUIRED_FIELDS if f not in targets]
    if missing:
        errors.append(f"Missing required fields: {', '.join(missing)}")

    seen: set[str] = set()
    for target in targets:
        if target in seen:
            errors.append(f"Field '{target}' is mapped multiple times")
        seen.add(target)

    subject_count = sum(1 for m in mappings if m.is_subject)
    if subject_count == 0:
        warnings.append("No subject columns mapped - ensure at least one subject is included")

    mapped_headers = {m.source_header for m in mappings}
    unmapped = [h for h in headers if h not in mapped_headers]
    if unmapped:
        warnings.append(f"Unmapped columns: {', '.join(unmapped)}")

    return MappingCheck(
        is_valid=not errors,
        errors=errors,
        warnings=warnings,
        total_columns=len(headers),
        mapped_columns=len(mappings),
        required_fields_mapped=sum(1 for m in mappings if m.required),
        subject_column_count=subject_count,
    )


def _rebuild(result: MappingResult, mappings: list[ColumnMapping], headers_touched: set[str]) -> MappingResult:
    mapped_headers = {m.source_header for m in mappings}
    claimed = {m.target_field for m in mappings}
    unmapped = [h for h in result.unmapped_headers if h not in mapped_headers]
    # headers that lost their mapping through an override become unmapped
    for h in headers_touched:
        if h not in mapped_headers and h not in unmapped:
            unmapped.append(h)
    suggestions = [
        s for s in result.suggestions
        if s.source_header not in headers_touched and s.suggested_field not in claimed
    ]
    return MappingResult(
        mappings=mappings,
        confidence=_confidence(mappings),
        suggestions=suggestions,
        unmapped_headers=unmapped,
        missing_required_fields=[f for f in REQUIRED_FIELDS if f not in claimed],
    )


def accept_suggestion(result: MappingResult, suggestion: MappingSuggestion) -> MappingResult:
    """Promote a suggestion to an accepted mapping."""
    return apply_overrides(result, {suggestion.source_header: suggestion.suggested_field})


def apply_overrides(result: MappingResult, overrides: Mapping[str, str | None]) -> MappingResult:
    """Apply caller decisions: header -> target field.

    ``"subject"`` maps the header as a subject column; ``None`` or ``""`` unmaps
    it. Overriding onto an already-claimed field moves the field to the new header.
    """
    mappings = list(result.mappings)
    used_subjects = {m.subject_key for m in mappings if m.is_subject}
    touched: set[str] = set()
    for header, target in overrides.items():
        touched.add(header)
        mappings = [m for m in mappings if m.source_header != header]
        if not target:
            continue
        if target == "subject":
            target = _unique_subject_field(header, len(mappings), used_subjects)  # type: ignore[arg-type]
        elif not target.startswith(SUBJECT_PREFIX):
            displaced = [m.source_header for m in mappings if m.target_field == target]
            touched.update(displaced)
            mappings = [m for m in mappings if m.target_field != target]
        mappings.append(build_mapping(header, target))
    return _rebuild(result, mappings, touched)
