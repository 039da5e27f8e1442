from __future__ import annotations

import math
import re
from collections import Counter

import numpy as np

from ..skills.base import SkillDocument

_TOKEN = re.compile(r"[a-z0-9]+")

STOP_WORDS = {
    "a", "an", "and", "are", "as", "at", "be", "by", "for", "from", "if", "in", "into",
    "is", "it", "of", "on", "or", "that", "the", "this", "to", "use", "when", "with", "your",
}

NAME_WEIGHT = 3
DESCRIPTION_WEIGHT = 2


def tokenize(text: str) -> list[str]:
    return [token for token in _TOKEN.findall(text.lower()) if len(token) >= 2 and token not in STOP_WORDS]


def _skill_terms(skill: SkillDocument) -> Counter[str]:
    terms: Counter[str] = Counter()
    for token in tokenize(skill.name.replace("-", " ")):
        terms[token] += NAME_WEIGHT
    for token in tokenize(skill.description):
        terms[token] += DESCRIPTION_WEIGHT
    terms.update(tokenize(skill.body))
    return terms


class SkillIndex:
    """TF-IDF index over skill names, descriptions and bodies, ranked by cosine similarity."""

    def __init__(self) -> None:
        self._skills: list[SkillDocument] = []
        self._vocabulary: dict[str, int] = {}
        self._idf: np.ndarray = np.zeros(0, dtype=np.float32)
        self._matrix: np.ndarray = np.zeros((0, 0), dtype=np.float32)

    def __len__(self) -> int:
        return len(self._skills)

    def build(self, skills: list[SkillDocument]) -> "SkillIndex":
        self._skills = list(skills)
        term_counts = [_skill_terms(skill) for skill in self._skills]

        vocabulary: dict[str, int] = {}
        for counts in term_counts:
            for term in counts:
                vocabulary.setdefault(term, len(vocabulary))
        self._vocabulary = vocabulary

        n_docs = len(self._skills)
        matrix = np.zeros((n_docs, len(vocabulary)), dtype=np.float32)
        for row, counts in enumerate(term_counts):
            for term, count in counts.items():
                matrix[row, vocabulary[term]] = 1.0 + math.log(count)

        doc_freq = np.count_nonzero(matrix > 0, axis=0).astype(np.float32)
        self._idf = np.log((1.0 + n_docs) / (1.0 + doc_freq)) + 1.0
        self._matrix = matrix * self._idf
        return self

    def _query_vector(self, query: str) -> np.ndarray | None:
        vector = np.zeros(len(self._vocabulary), dtype=np.float32)
        hits = False
        for term, count in Counter(tokenize(query)).items():
            column = self._vocabulary.get(term)
            if column is None:
                continue
            vector[column] = (1.0 + math.log(count)) * self._idf[column]
            hits = True
        return vector if hits else None

    def search(self, query: str, k: int = 5, min_score: float = 0.0) -> list[tuple[SkillDocument, float]]:
        if k <= 0 or not self._skills:
            return []
        query_vector = self._query_vector(query)
        if query_vector is None:
            return []

        norms = np.linalg.norm(self._matrix, axis=1)
        denom = np.maximum(norms * np.linalg.norm(query_vector), 1e-12)
        scores = (self._matrix @ query_vector) / denom

        order = sorted(range(len(self._skills)), key=lambda i: (-float(scores[i]), self._skills[i].name))
        ranked: list[tuple[SkillDocument, float]] = []
        for i in order:
            score = float(scores[i])
            if score <= 0.0 or score < min_score:
                continue
            ranked.append((self._skills[i], score))
            if len(ranked) >= k:
                break
        return ranked
