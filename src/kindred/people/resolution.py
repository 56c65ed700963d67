"""Match a person mention against a user's known relationship records.

Each candidate record is scored on textual evidence:

1. exact real name
2. a multi-word alias shared with the candidate (strong)
3. a single-word alias shared with the candidate, only when the relation
   groups do not conflict
4. fuzzy real-name overlap, only when nothing else scored

Exact names and multi-word aliases are "strong" evidence and are the only
signals allowed to merge across conflicting relation groups.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from kindred.config.models import ResolutionConfig
from kindred.people.helpers import normalize, token_jaccard
from kindred.people.relations import groups_conflict, is_spouse
from kindred.people.types import CandidateScore, PersonMention, RelationshipRecord

logger = logging.getLogger(__name__)


def _alias_pool(names: Sequence[str | None]) -> set[str]:
    return {key for key in (normalize(n) for n in names) if key}


def score_candidate(
    mention: PersonMention,
    record: RelationshipRecord,
    weights: ResolutionConfig | None = None,
) -> CandidateScore:
    """Score one record against a mention."""
    weights = weights or ResolutionConfig()
    result = CandidateScore(record=record)

    mention_name = normalize(mention.real_name)
    record_name = normalize(record.real_name)
    conflict = groups_conflict(record.relation_type, mention.relation_type)

    if mention_name and mention_name == record_name:
        result.score += weights.exact_name_weight
        result.strong = True
        result.reasons.append("exact_name")

    record_pool = _alias_pool(record.names())
    mention_pool = _alias_pool(mention.names())
    shared = mention_pool & record_pool

    if any(" " in alias for alias in shared):
        result.score += weights.full_alias_weight
        result.strong = True
        result.reasons.append("full_alias")

    if not conflict and any(" " not in alias for alias in shared):
        result.score += weights.single_alias_weight
        result.reasons.append("single_alias")

    if result.score == 0 and mention_name and record_name:
        similarity = token_jaccard(mention_name, record_name)
        if similarity >= weights.fuzzy_name_threshold:
            result.score += weights.fuzzy_name_weight
            result.reasons.append("fuzzy_name")

    if conflict and not result.strong:
        result.skipped = True

    return result


def _exclusive_spouse(
    mention: PersonMention, records: Sequence[RelationshipRecord]
) -> RelationshipRecord | None:
    """The single spouse record, for a nameless "my wife" mention."""
    if not mention.is_empty() or not is_spouse(mention.relation_type):
        return None
    spouses = [r for r in records if is_spouse(r.relation_type)]
    if len(spouses) == 1:
        return spouses[0]
    return None


def resolve(
    mention: PersonMention,
    records: Sequence[RelationshipRecord],
    weights: ResolutionConfig | None = None,
) -> RelationshipRecord | None:
    """Pick the record this mention refers to, or None for a new person.

    The best-scoring non-skipped candidate wins (first seen on ties) and is
    accepted only at or above ``match_threshold``.
    """
    weights = weights or ResolutionConfig()

    best: CandidateScore | None = None
    for record in records:
        candidate = score_candidate(mention, record, weights)
        if candidate.skipped:
            if candidate.score:
                logger.debug(
                    "candidate_skipped_conflict",
                    extra={
                        "record_id": record.id,
                        "record_relation": record.relation_type,
                        "mention_relation": mention.relation_type,
                    },
                )
            continue
        if best is None or candidate.score > best.score:
            best = candidate

    if best is not None and best.score >= weights.match_threshold:
        logger.debug(
            "mention_resolved",
            extra={
                "record_id": best.record.id,
                "score": best.score,
                "reasons": ",".join(best.reasons),
            },
        )
        return best.record

    if weights.exclusive_spouse:
        spouse = _exclusive_spouse(mention, records)
        if spouse is not None:
            logger.debug("mention_resolved_spouse", extra={"record_id": spouse.id})
            return spouse

    return None
