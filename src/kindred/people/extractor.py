"""Extract person mentions from a user message with an LLM."""

import json
import logging
import re
from collections import Counter
from typing import TYPE_CHECKING, Any

from kindred.llm.types import Message, Role
from kindred.people.helpers import normalize
from kindred.people.relations import is_known
from kindred.people.types import PersonMention

if TYPE_CHECKING:
    from kindred.llm import LLMProvider

logger = logging.getLogger(__name__)

EXTRACTION_PROMPT = """Extract every person mentioned in the user's message.

Respond with EXACTLY this JSON and nothing else:
[
  {{
    "real_name": "string, or empty if no name was given",
    "aliases": ["nicknames or variations exactly as written"],
    "relation_type": "pai|mae|irmao|irma|filho|filha|esposa|esposo|conjuge|namorada|namorado|sogra|sogro|amigo|colega|mother|father|wife|husband|sister|brother|friend|self|unknown",
    "note": "short context if useful (optional)",
    "emotion_markers": ["key emotions the user shows toward this person, e.g. amor, raiva, culpa"],
    "context": "short phrase on the situation in which the person came up"
  }}
]

Rules:
- Never invent names. Keep aliases as written (e.g. "Lu Braga", "JEA", "Paulinho").
- Only list emotions the message actually expresses; otherwise use [].
- Use the language of the message for relation_type.
- If the message says "my husband" / "minha esposa" without a name, return the correct relation_type with an empty real_name and no aliases.
- If the person is the user themself, use relation_type "self".
- If nobody is mentioned, return [].

Message: \"\"\"{text}\"\"\""""

# Labels the model uses for the speaker themself
SELF_LABELS = {"self", "me", "myself", "eu", "eu mesmo", "eu mesma"}

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)```", re.DOTALL)

# Accepted key spellings, English first, then the Portuguese schema
_KEYS = {
    "real_name": ("real_name", "name", "nome_real"),
    "aliases": ("aliases", "apelidos"),
    "relation_type": ("relation_type", "relation", "tipo_vinculo"),
    "note": ("note", "observacao"),
    "emotion_markers": ("emotion_markers", "emotions", "marcador_emocional"),
    "context": ("context", "contexto_relevante"),
}


def _field(item: dict[str, Any], name: str) -> Any:
    for key in _KEYS[name]:
        if key in item:
            return item[key]
    return None


def _string_list(value: Any) -> list[str]:
    """A list field that the model may also send as one string."""
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if v and str(v).strip()]


def strip_code_fences(text: str) -> str:
    text = text.strip()
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    return text


def parse_mentions(
    response_text: str, *, drop_counts: Counter[str] | None = None
) -> list[PersonMention]:
    """Parse the model's JSON into mentions. Anything malformed yields []."""
    counters = drop_counts if drop_counts is not None else Counter()
    text = strip_code_fences(response_text or "")

    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        logger.debug("Failed to parse extraction response as JSON: %s", text[:200])
        return []

    if isinstance(data, dict):
        data = data.get("people") or data.get("mentions") or []
    if not isinstance(data, list):
        logger.debug("Extraction response is not a list: %s", type(data))
        return []

    mentions = []
    for item in data:
        if not isinstance(item, dict):
            counters["invalid"] += 1
            continue
        mention = _parse_item(item, counters)
        if mention is not None:
            mentions.append(mention)
    return mentions


def _parse_item(item: dict[str, Any], counters: Counter[str]) -> PersonMention | None:
    relation = _field(item, "relation_type")
    relation = str(relation).strip() if relation else "unknown"
    if normalize(relation) in SELF_LABELS:
        counters["self"] += 1
        return None

    aliases = _string_list(_field(item, "aliases"))

    real_name = _field(item, "real_name")
    real_name = str(real_name).strip() if real_name else None

    note = _field(item, "note")
    context = _field(item, "context")
    mention = PersonMention(
        real_name=real_name,
        aliases=aliases,
        relation_type=relation,
        note=str(note).strip() if note else None,
        emotion_markers=_string_list(_field(item, "emotion_markers")),
        context=context.strip() if isinstance(context, str) else None,
    )

    # "minha esposa" with no name is still a mention worth keeping
    if mention.is_empty() and not is_known(mention.relation_type):
        counters["empty"] += 1
        return None
    return mention


class MentionExtractor:
    """Turns a raw message into person mentions via a small LLM call."""

    def __init__(
        self,
        llm: "LLMProvider",
        model: str | None = None,
        max_tokens: int = 300,
    ):
        self._llm = llm
        self._model = model
        self._max_tokens = max_tokens

    async def extract(self, text: str) -> list[PersonMention]:
        """Extract mentions from ``text``.

        Never raises: LLM errors and unparseable output both give [].
        """
        if not text or not text.strip():
            return []

        try:
            response = await self._llm.complete(
                messages=[
                    Message(role=Role.USER, content=EXTRACTION_PROMPT.format(text=text))
                ],
                model=self._model,
                max_tokens=self._max_tokens,
                temperature=0.0,
            )
        except Exception:
            logger.warning(
                "mention_extraction_failed",
                extra={"text_preview": text[:80]},
                exc_info=True,
            )
            return []

        drops: Counter[str] = Counter()
        mentions = parse_mentions(response.text or "", drop_counts=drops)
        logger.debug(
            "mentions_extracted",
            extra={"count": len(mentions), "dropped": sum(drops.values())},
        )
        return mentions
