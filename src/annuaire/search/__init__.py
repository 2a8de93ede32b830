"""
Search engine

Routing, fallback strategies, batched fetching, joins and post-filters
over the registry's Practitioner / PractitionerRole / Organization graph.
"""

from annuaire.search.batch import BatchFetcher, split_batches
from annuaire.search.detail import get_practitioner
from annuaire.search.filters import apply_post_filters, filter_by_city, filter_by_specialty
from annuaire.search.merge import merge, merge_role_groups
from annuaire.search.router import QueryRouter

__all__ = [
    "BatchFetcher",
    "split_batches",
    "get_practitioner",
    "apply_post_filters",
    "filter_by_city",
    "filter_by_specialty",
    "merge",
    "merge_role_groups",
    "QueryRouter",
]
