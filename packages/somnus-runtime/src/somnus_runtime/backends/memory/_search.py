"""Keyword/IDF ranking for the in-process memory store.

Pure Python, no external dependencies: an inverted document-frequency
table built over the candidate memories, then IDF-weighted term overlap.
"""
from __future__ import annotations

import math
import re
from collections import Counter

# Common English stopwords to filter out
_STOPWORDS = frozenset({
    "a", "an", "and", "are", "as", "at", "be", "by", "for", "from",
    "has", "he", "in", "is", "it", "its", "of", "on", "that", "the",
    "to", "was", "will", "with", "this", "but", "they", "have",
    "had", "what", "when", "where", "who", "which", "why", "how",
})


def tokenize(text: str) -> list[str]:
    """Lowercase, split on non-word characters, drop stopwords and 1-char tokens."""
    tokens = re.findall(r"\w+", text.lower())
    return [t for t in tokens if t not in _STOPWORDS and len(t) > 1]


def rank(query: str, documents: dict[str, str]) -> list[tuple[str, float]]:
    """Rank documents (id -> text) against a free-text query.

    Each query term present in a document contributes log(N / df), or
    1.0 when the term occurs in every document. Documents with no
    overlapping term are dropped.

    Returns:
        (id, score) pairs sorted by score descending
    """
    doc_terms = {doc_id: set(tokenize(text)) for doc_id, text in documents.items()}
    doc_freq: Counter[str] = Counter()
    for terms in doc_terms.values():
        doc_freq.update(terms)
    total = len(documents)

    scored: list[tuple[str, float]] = []
    for doc_id, terms in doc_terms.items():
        score = 0.0
        for term in tokenize(query):
            if term not in terms:
                continue
            idf = math.log(total / doc_freq[term])
            score += idf if idf > 0 else 1.0
        if score > 0:
            scored.append((doc_id, score))

    scored.sort(key=lambda x: x[1], reverse=True)
    return scored
