"""TF-IDF cosine similarity between segments.

Each segment is a document made of its token surfaces joined by single
spaces and split back on whitespace. Weights use smoothed IDF,
``ln((1 + N) / (1 + df)) + 1``, and every row is L2-normalized, so the
cosine of two rows is their dot product.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from scipy import sparse
from sklearn.feature_extraction.text import TfidfVectorizer

from ..common.config import DEFAULT_SIMILARITY_RESULTS
from ..common.types import SimilarityHit
from ..project.models import Project

logger = logging.getLogger(__name__)


@dataclass
class TfidfIndex:
    """Row ``i`` holds the normalized TF-IDF vector of segment ``i``."""

    matrix: sparse.csr_matrix
    terms: list[str]

    @property
    def n_rows(self) -> int:
        return int(self.matrix.shape[0])


def segment_documents(project: Project) -> list[str]:
    return [" ".join(token.surface for token in segment.tokens) for segment in project.segments]


def build_tfidf_index(project: Project) -> TfidfIndex:
    documents = segment_documents(project)
    vectorizer = TfidfVectorizer(
        tokenizer=str.split,
        token_pattern=None,
        lowercase=False,
        smooth_idf=True,
        norm="l2",
        dtype=np.float64,
    )
    try:
        matrix = vectorizer.fit_transform(documents)
        terms = list(vectorizer.get_feature_names_out())
    except ValueError:
        # No segment has any token.
        matrix = sparse.csr_matrix((len(documents), 0), dtype=np.float64)
        terms = []

    logger.debug(
        "Built TF-IDF matrix",
        extra={"rows": len(documents), "terms": len(terms)},
    )
    return TfidfIndex(matrix=sparse.csr_matrix(matrix), terms=terms)


def cosine_scores(index: TfidfIndex, target_idx: int) -> np.ndarray:
    """Cosine similarity of every row against row ``target_idx``."""
    row = index.matrix[target_idx]
    return np.asarray((index.matrix @ row.T).toarray(), dtype=np.float64).ravel()


def find_similar_segments(
    index: TfidfIndex,
    target_idx: int,
    k: int = DEFAULT_SIMILARITY_RESULTS,
) -> list[SimilarityHit]:
    """Top ``k`` segments by cosine score, excluding the target and zero scores.

    Ties are broken by ascending segment index.
    """

    if index.n_rows == 0 or k <= 0:
        return []
    if not 0 <= target_idx < index.n_rows:
        raise IndexError(f"segment index {target_idx} out of range")

    scores = cosine_scores(index, target_idx)
    hits = [
        (idx, float(score))
        for idx, score in enumerate(scores)
        if idx != target_idx and score > 0.0
    ]
    hits.sort(key=lambda hit: (-hit[1], hit[0]))
    return hits[:k]


__all__ = [
    "TfidfIndex",
    "build_tfidf_index",
    "cosine_scores",
    "find_similar_segments",
    "segment_documents",
]
