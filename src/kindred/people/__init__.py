"""Relationship memory: people mentioned by a user across conversations."""

from kindred.people.annotations import RecordAnnotator, annotation_fields
from kindred.people.consolidation import BatchWorkingSet, RecordConsolidator
from kindred.people.context import render_records, select_records
from kindred.people.extractor import MentionExtractor, parse_mentions
from kindred.people.helpers import normalize, token_jaccard, uniq_merge
from kindred.people.kinship import relativize
from kindred.people.manager import PeopleMemory, create_people_memory
from kindred.people.profile import ProfileCompactor, build_brief
from kindred.people.relations import (
    Kinship,
    RelationGroup,
    group_of,
    groups_conflict,
    parse_relation,
)
from kindred.people.resolution import resolve, score_candidate
from kindred.people.types import (
    CandidateScore,
    MentionHistoryEntry,
    PersonMention,
    RelationshipRecord,
)

__all__ = [
    # Facade
    "PeopleMemory",
    "create_people_memory",
    # Pipeline
    "BatchWorkingSet",
    "MentionExtractor",
    "ProfileCompactor",
    "RecordAnnotator",
    "RecordConsolidator",
    "annotation_fields",
    "build_brief",
    "parse_mentions",
    "relativize",
    "render_records",
    "resolve",
    "score_candidate",
    "select_records",
    # Relations
    "Kinship",
    "RelationGroup",
    "group_of",
    "groups_conflict",
    "parse_relation",
    # Helpers
    "normalize",
    "token_jaccard",
    "uniq_merge",
    # Types
    "CandidateScore",
    "MentionHistoryEntry",
    "PersonMention",
    "RelationshipRecord",
]
