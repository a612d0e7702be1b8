"""
Column role inference.

Suggests which header plays which role. This is only a default: the
caller confirms or overrides it before any row is converted.

Matching is case-insensitive and tiered:
1. Headers equal to one of a role's patterns are claimed first, for all roles
2. A header containing a pattern (or, from three letters, contained in one)
   scores 0.8
3. Otherwise Levenshtein similarity, kept only above 0.6, so typos
   like "Descripton" or "Amout" still match

Remaining roles are matched in a fixed order (date, debit, credit, amount,
description, notes). Each header gets at most one role and each role at
most one header; on equal scores the leftmost header wins.
"""

from typing import Optional

from rapidfuzz.distance import Levenshtein

from zerobudget.models.importing import ColumnRole, ImportColumnMapping


ROLE_PATTERNS: dict[ColumnRole, tuple[str, ...]] = {
    ColumnRole.DATE: (
        "date", "posted", "posting", "transaction date", "trans date", "trans. date",
    ),
    ColumnRole.DEBIT: (
        "debit", "withdrawal", "withdrawals", "amount out", "money out", "outflow", "payments",
    ),
    ColumnRole.CREDIT: (
        "credit", "deposit", "deposits", "amount in", "money in", "inflow", "income",
    ),
    ColumnRole.AMOUNT: ("amount", "total", "value"),
    ColumnRole.DESCRIPTION: (
        "description", "desc", "memo", "payee", "merchant", "narrative", "details",
        "transaction description",
    ),
    ColumnRole.NOTES: ("notes", "note", "comment", "remarks"),
}

SUBSTRING_SCORE = 0.8
MIN_SIMILARITY = 0.6


def similarity(a: str, b: str) -> float:
    """1 - edit distance / length of the longer string."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - Levenshtein.distance(a, b) / longest


def best_header(headers: list[str], patterns: tuple[str, ...]) -> Optional[str]:
    """Highest scoring header for one role's patterns, None below the threshold."""
    best: Optional[str] = None
    best_score = 0.0
    for header in headers:
        lowered = header.strip().lower()
        if not lowered:
            continue
        for pattern in patterns:
            if pattern in lowered or (len(lowered) >= 3 and lowered in pattern):
                score = SUBSTRING_SCORE
            else:
                score = similarity(lowered, pattern)
                if score <= MIN_SIMILARITY:
                    continue
            if score > best_score:
                best, best_score = header, score
    return best


def suggest_roles(headers: list[str]) -> dict[str, ColumnRole]:
    """{header: role} for every header that matched."""
    assigned: dict[str, ColumnRole] = {}

    # Exact matches first, so "Amount" is never claimed by "amount out"
    for role, patterns in ROLE_PATTERNS.items():
        for header in headers:
            if header not in assigned and header.strip().lower() in patterns:
                assigned[header] = role
                break

    for role, patterns in ROLE_PATTERNS.items():
        if role in assigned.values():
            continue
        free = [header for header in headers if header not in assigned]
        header = best_header(free, patterns)
        if header is not None:
            assigned[header] = role
    return assigned


def suggest_column_mapping(headers: list[str]) -> ImportColumnMapping:
    return ImportColumnMapping.from_roles(suggest_roles(headers))
