"""
Code Similarity

Compares two code fragments by token overlap (Jaccard, 80%) and
line-count closeness (20%). Literals and variable names are normalized
away first so structurally identical code scores 1.0.
"""

import re
from dataclasses import dataclass
from typing import List, Set

JACCARD_WEIGHT = 0.8
LINE_WEIGHT = 0.2
DEFAULT_SIMILARITY_THRESHOLD = 0.8

_TOKEN_SPLIT = re.compile(r"[\s.,;:(){}\[\]<>]+")


@dataclass
class SimilarMatch:
    pattern: str
    similarity: float
    index: int


def normalize_code(code: str) -> str:
    """Canonical form: string/number literals and declared names replaced."""
    normalized = re.sub(r"'[^']*'", "<STRING>", code)
    normalized = re.sub(r'"[^"]*"', "<STRING>", normalized)
    normalized = re.sub(r"`[^`]*`", "<STRING>", normalized)
    normalized = re.sub(r"\b\d+(?:\.\d+)?\b", "<NUMBER>", normalized)
    for keyword in ("const", "let", "var"):
        normalized = re.sub(rf"\b{keyword}\s+(\w+)", f"{keyword} <VAR>", normalized)
    normalized = re.sub(r"\s+", " ", normalized)
    return normalized.strip()


def tokenize(code: str) -> Set[str]:
    return {token for token in _TOKEN_SPLIT.split(code) if token}


def count_lines(code: str) -> int:
    if not code:
        return 0
    return len(code.split("\n"))


def jaccard_similarity(set_a: Set[str], set_b: Set[str]) -> float:
    if not set_a and not set_b:
        return 1.0
    if not set_a or not set_b:
        return 0.0
    return len(set_a & set_b) / len(set_a | set_b)


def line_count_similarity(lines_a: int, lines_b: int) -> float:
    if lines_a == 0 and lines_b == 0:
        return 1.0
    return 1 - abs(lines_a - lines_b) / max(lines_a, lines_b)


def calculate_similarity(code_a: str, code_b: str) -> float:
    """Similarity in [0, 1], rounded to two decimals."""
    norm_a = normalize_code(code_a)
    norm_b = normalize_code(code_b)
    if norm_a == norm_b:
        return 1.0

    jaccard = jaccard_similarity(tokenize(norm_a), tokenize(norm_b))
    lines = line_count_similarity(count_lines(code_a), count_lines(code_b))
    return round(jaccard * JACCARD_WEIGHT + lines * LINE_WEIGHT, 2)


def is_near_duplicate(code_a: str, code_b: str,
                      threshold: float = DEFAULT_SIMILARITY_THRESHOLD) -> bool:
    return calculate_similarity(code_a, code_b) >= threshold


def find_similar_patterns(target: str, patterns: List[str],
                          threshold: float = DEFAULT_SIMILARITY_THRESHOLD) -> List[SimilarMatch]:
    """Candidates scoring at or above threshold, best first (stable on ties)."""
    matches = []
    for index, pattern in enumerate(patterns):
        if pattern is None:
            continue
        score = calculate_similarity(target, pattern)
        if score >= threshold:
            matches.append(SimilarMatch(pattern=pattern, similarity=score, index=index))
    matches.sort(key=lambda m: m.similarity, reverse=True)
    return matches
