"""Lexical relevance scoring with optional semantic re-ranking.

Score components for one item against a query:
- 0.8 if the content contains the whole query
- word hits: 0.1 per whole-word occurrence, capped at 0.3
  ("per_word" caps each query word, "total" caps the sum)
- 0.4 if the title contains the query
- 0.2 if the filename contains the query
- semantic_weight * max(cosine, 0), only for items with a lexical match

Items at or below 0.1 are dropped.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal

from backend.app.embeddings.similarity import cosine_similarity
from backend.app.models.knowledge import KnowledgeItem, ScoredKnowledgeItem

PHRASE_WEIGHT = 0.8
WORD_WEIGHT = 0.1
WORD_CAP = 0.3
TITLE_WEIGHT = 0.4
FILENAME_WEIGHT = 0.2
MIN_SCORE = 0.1

WordCapMode = Literal["per_word", "total"]


@dataclass(frozen=True)
class RankingConfig:
    word_cap_mode: WordCapMode = "per_word"
    semantic_weight: float = 0.0


def query_words(query: str) -> list[str]:
    """Distinct lowercase words of the query, in order of appearance."""
    return list(dict.fromkeys(query.lower().split()))


def _word_hits(content_lower: str, words: list[str], mode: WordCapMode) -> float:
    counts = [len(re.findall(rf"\b{re.escape(w)}\b", content_lower)) for w in words]
    if mode == "total":
        return min(sum(c * WORD_WEIGHT for c in counts), WORD_CAP)
    return sum(min(c * WORD_WEIGHT, WORD_CAP) for c in counts)


def lexical_score(item: KnowledgeItem, query: str, mode: WordCapMode = "per_word") -> float:
    query_lower = query.strip().lower()
    if not query_lower:
        return 0.0

    content_lower = item.content.lower()
    score = 0.0

    if query_lower in content_lower:
        score += PHRASE_WEIGHT

    score += _word_hits(content_lower, query_words(query_lower), mode)

    if query_lower in item.title.lower():
        score += TITLE_WEIGHT

    if item.filename and query_lower in item.filename.lower():
        score += FILENAME_WEIGHT

    return score


def rank_items(
    items: Iterable[KnowledgeItem],
    query: str,
    *,
    limit: int = 10,
    config: RankingConfig | None = None,
    query_embedding: list[float] | None = None,
) -> list[ScoredKnowledgeItem]:
    """Score, filter and order items for a query.

    Ties break on updated_at (newest first), then item_id.
    """
    config = config or RankingConfig()
    if not query.strip() or limit <= 0:
        return []

    scored: list[ScoredKnowledgeItem] = []
    for item in items:
        score = lexical_score(item, query, config.word_cap_mode)
        if (
            score > 0
            and config.semantic_weight > 0
            and query_embedding is not None
            and item.embedding is not None
            and len(item.embedding) == len(query_embedding)
        ):
            similarity = cosine_similarity(query_embedding, item.embedding)
            score += config.semantic_weight * max(similarity, 0.0)

        if score > MIN_SCORE:
            scored.append(ScoredKnowledgeItem(item=item, score=score))

    # Stable sorts, least significant key first
    scored.sort(key=lambda s: str(s.item.item_id))
    scored.sort(key=lambda s: s.item.updated_at, reverse=True)
    scored.sort(key=lambda s: s.score, reverse=True)
    return scored[:limit]
