"""Relative-kinship correction for a batch of mentions.

"mãe da Ana" names the user's mother-in-law once Ana is known to be the
user's spouse. The patterns are a best-effort heuristic over a single
message, not a parser: the captured name must match a spouse name or alias
token-for-token, so "mãe da Anabela" never matches a spouse called Ana.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from collections.abc import Iterable, Sequence
from dataclasses import replace

from kindred.people.helpers import normalize
from kindred.people.relations import in_law_label
from kindred.people.types import PersonMention, RelationshipRecord

logger = logging.getLogger(__name__)

_NAME = r"([^\W\d_]+(?:\s+[^\W\d_]+){0,3})"

# Name follows the parent word: "mãe da Ana", "mother of Ana"
_FORWARD_PATTERNS = (
    re.compile(rf"\b(?:m[ãa]e|pai)\s+(?:da|do|de)\s+{_NAME}", re.IGNORECASE),
    re.compile(rf"\b(?:mother|father|mom|dad)\s+of\s+{_NAME}", re.IGNORECASE),
)

# Name precedes the parent word: "Ana's mom"
_POSSESSIVE_PATTERN = re.compile(
    rf"{_NAME}['’]s\s+(?:mother|father|mom|dad)\b", re.IGNORECASE
)


def _spouse_names(spouse_records: Iterable[RelationshipRecord]) -> set[str]:
    names: set[str] = set()
    for record in spouse_records:
        for name in record.names():
            key = " ".join(normalize(name).split())
            if key:
                names.add(key)
    return names


def _mentions_spouse(raw_text: str, spouse_names: set[str]) -> bool:
    """Whether any captured name starts (or, possessively, ends) with a spouse name."""
    forward = [
        normalize(m.group(1)).split()
        for pattern in _FORWARD_PATTERNS
        for m in pattern.finditer(raw_text)
    ]
    for tokens in forward:
        for end in range(len(tokens), 0, -1):
            if " ".join(tokens[:end]) in spouse_names:
                return True

    for match in _POSSESSIVE_PATTERN.finditer(raw_text):
        tokens = normalize(match.group(1)).split()
        for start in range(len(tokens)):
            if " ".join(tokens[start:]) in spouse_names:
                return True

    return False


def relativize(
    raw_text: str,
    mentions: Sequence[PersonMention],
    spouse_records: Sequence[RelationshipRecord],
) -> list[PersonMention]:
    """Remap mother/father mentions to in-laws when the text names the spouse.

    Returns a new list; the input mentions are not modified.
    """
    if not spouse_records or not raw_text:
        return list(mentions)

    # Patterns and the name capture expect precomposed characters
    text = unicodedata.normalize("NFC", raw_text)
    if not _mentions_spouse(text, _spouse_names(spouse_records)):
        return list(mentions)

    result: list[PersonMention] = []
    for mention in mentions:
        label = in_law_label(mention.relation_type)
        if label is None:
            result.append(mention)
            continue
        logger.debug(
            "mention_relativized",
            extra={"from_relation": mention.relation_type, "to_relation": label},
        )
        result.append(replace(mention, relation_type=label))
    return result
