"""Relationship labels, kinship categories and group conflict rules.

Labels arrive as free text from the extractor ("esposa", "mom", "Mãe").
``parse_relation`` folds them onto the closed ``Kinship`` enum and every
``Kinship`` belongs to exactly one ``RelationGroup``. Conflict rules are
defined between groups, never between raw labels.
"""

from __future__ import annotations

from enum import Enum

from kindred.people.helpers import normalize


class Kinship(str, Enum):
    SPOUSE = "spouse"
    PARTNER = "partner"
    MOTHER = "mother"
    FATHER = "father"
    MOTHER_IN_LAW = "mother_in_law"
    FATHER_IN_LAW = "father_in_law"
    STEPMOTHER = "stepmother"
    STEPFATHER = "stepfather"
    SISTER = "sister"
    BROTHER = "brother"
    DAUGHTER = "daughter"
    SON = "son"
    GRANDPARENT = "grandparent"
    GRANDCHILD = "grandchild"
    FRIEND = "friend"
    COWORKER = "coworker"
    OTHER = "other"
    UNKNOWN = "unknown"


class RelationGroup(str, Enum):
    CONJUGAL = "conjugal"
    SIBLING = "sibling"
    PARENTAL = "parental"
    CHILDREN = "children"
    OTHER = "other"


# Normalized label -> kinship. Portuguese first, then English.
LEXICON: dict[str, Kinship] = {
    # conjugal
    "esposa": Kinship.SPOUSE,
    "esposo": Kinship.SPOUSE,
    "marido": Kinship.SPOUSE,
    "mulher": Kinship.SPOUSE,
    "conjuge": Kinship.SPOUSE,
    "wife": Kinship.SPOUSE,
    "husband": Kinship.SPOUSE,
    "spouse": Kinship.SPOUSE,
    "namorada": Kinship.PARTNER,
    "namorado": Kinship.PARTNER,
    "noiva": Kinship.PARTNER,
    "noivo": Kinship.PARTNER,
    "companheira": Kinship.PARTNER,
    "companheiro": Kinship.PARTNER,
    "parceira": Kinship.PARTNER,
    "parceiro": Kinship.PARTNER,
    "partner": Kinship.PARTNER,
    "girlfriend": Kinship.PARTNER,
    "boyfriend": Kinship.PARTNER,
    "fiance": Kinship.PARTNER,
    "fiancee": Kinship.PARTNER,
    # parental
    "mae": Kinship.MOTHER,
    "mamae": Kinship.MOTHER,
    "mother": Kinship.MOTHER,
    "mom": Kinship.MOTHER,
    "mum": Kinship.MOTHER,
    "pai": Kinship.FATHER,
    "papai": Kinship.FATHER,
    "father": Kinship.FATHER,
    "dad": Kinship.FATHER,
    "sogra": Kinship.MOTHER_IN_LAW,
    "mother in law": Kinship.MOTHER_IN_LAW,
    "sogro": Kinship.FATHER_IN_LAW,
    "father in law": Kinship.FATHER_IN_LAW,
    "madrasta": Kinship.STEPMOTHER,
    "stepmother": Kinship.STEPMOTHER,
    "padrasto": Kinship.STEPFATHER,
    "stepfather": Kinship.STEPFATHER,
    # sibling
    "irma": Kinship.SISTER,
    "sister": Kinship.SISTER,
    "irmao": Kinship.BROTHER,
    "brother": Kinship.BROTHER,
    # children
    "filha": Kinship.DAUGHTER,
    "daughter": Kinship.DAUGHTER,
    "filho": Kinship.SON,
    "son": Kinship.SON,
    # other
    "avo": Kinship.GRANDPARENT,
    "grandmother": Kinship.GRANDPARENT,
    "grandfather": Kinship.GRANDPARENT,
    "neta": Kinship.GRANDCHILD,
    "neto": Kinship.GRANDCHILD,
    "grandchild": Kinship.GRANDCHILD,
    "granddaughter": Kinship.GRANDCHILD,
    "grandson": Kinship.GRANDCHILD,
    "amiga": Kinship.FRIEND,
    "amigo": Kinship.FRIEND,
    "friend": Kinship.FRIEND,
    "colega": Kinship.COWORKER,
    "chefe": Kinship.COWORKER,
    "coworker": Kinship.COWORKER,
    "colleague": Kinship.COWORKER,
    "boss": Kinship.COWORKER,
    # placeholders
    "desconhecido": Kinship.UNKNOWN,
    "unknown": Kinship.UNKNOWN,
}

GROUP_OF: dict[Kinship, RelationGroup] = {
    Kinship.SPOUSE: RelationGroup.CONJUGAL,
    Kinship.PARTNER: RelationGroup.CONJUGAL,
    Kinship.MOTHER: RelationGroup.PARENTAL,
    Kinship.FATHER: RelationGroup.PARENTAL,
    Kinship.MOTHER_IN_LAW: RelationGroup.PARENTAL,
    Kinship.FATHER_IN_LAW: RelationGroup.PARENTAL,
    Kinship.STEPMOTHER: RelationGroup.PARENTAL,
    Kinship.STEPFATHER: RelationGroup.PARENTAL,
    Kinship.SISTER: RelationGroup.SIBLING,
    Kinship.BROTHER: RelationGroup.SIBLING,
    Kinship.DAUGHTER: RelationGroup.CHILDREN,
    Kinship.SON: RelationGroup.CHILDREN,
    Kinship.GRANDPARENT: RelationGroup.OTHER,
    Kinship.GRANDCHILD: RelationGroup.OTHER,
    Kinship.FRIEND: RelationGroup.OTHER,
    Kinship.COWORKER: RelationGroup.OTHER,
    Kinship.OTHER: RelationGroup.OTHER,
    Kinship.UNKNOWN: RelationGroup.OTHER,
}

CONFLICTING_GROUPS: frozenset[frozenset[RelationGroup]] = frozenset(
    {
        frozenset({RelationGroup.CONJUGAL, RelationGroup.SIBLING}),
        frozenset({RelationGroup.CONJUGAL, RelationGroup.PARENTAL}),
    }
)

_POSSESSIVES = ("minha ", "meu ", "my ")

_ENGLISH_PARENTS = {"mother", "mom", "mum", "father", "dad"}


def _label_key(label: str | None) -> str:
    key = normalize(label).replace("-", " ").replace("_", " ")
    for prefix in _POSSESSIVES:
        if key.startswith(prefix):
            key = key[len(prefix) :]
            break
    return " ".join(key.split())


def parse_relation(label: str | None) -> Kinship:
    """Map a free-text relation label onto ``Kinship``.

    Empty labels are ``UNKNOWN``; labels outside the lexicon are ``OTHER``.
    """
    key = _label_key(label)
    if not key:
        return Kinship.UNKNOWN
    return LEXICON.get(key, Kinship.OTHER)


def group_of(label: str | None) -> RelationGroup:
    return GROUP_OF[parse_relation(label)]


def groups_conflict(a: str | None, b: str | None) -> bool:
    """True when one person cannot hold both relations at once.

    Only conjugal/sibling and conjugal/parental pairs conflict.
    """
    pair = frozenset({group_of(a), group_of(b)})
    return pair in CONFLICTING_GROUPS


def is_conjugal(label: str | None) -> bool:
    return group_of(label) is RelationGroup.CONJUGAL


def is_spouse(label: str | None) -> bool:
    """Married partner; a user has at most one."""
    return parse_relation(label) is Kinship.SPOUSE


def is_known(label: str | None) -> bool:
    """Whether a label carries information worth recording."""
    return parse_relation(label) is not Kinship.UNKNOWN


def in_law_label(label: str | None) -> str | None:
    """In-law counterpart of a mother/father label, in the label's language."""
    kinship = parse_relation(label)
    english = _label_key(label) in _ENGLISH_PARENTS
    if kinship is Kinship.MOTHER:
        return "mother-in-law" if english else "sogra"
    if kinship is Kinship.FATHER:
        return "father-in-law" if english else "sogro"
    return None
