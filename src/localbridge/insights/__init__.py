"""Insight tools.

Higher level tools built on the repositories: whole-schema introspection,
semantic summaries with an LLM prompt template, foreign-key relationship
graphs, aggregate analytics, and catalog comments.

Introspection and relationship results may be cached in the first connected
Redis instance (``introspection:<db>``, ``relationships:<db>[:<table>]``).
"""

from .analytics import AnalyticsHandler
from .cache import ResultCache
from .introspection import IntrospectionHandler
from .metadata import MetadataHandler
from .relationship import RelationshipHandler
from .semantic_summary import SemanticSummaryHandler

__all__ = [
    "AnalyticsHandler",
    "IntrospectionHandler",
    "MetadataHandler",
    "RelationshipHandler",
    "SemanticSummaryHandler",
    "ResultCache",
]
