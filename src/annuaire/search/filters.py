"""
Post-filters over merged results.

Case-insensitive substring predicates. Each filter only removes
results, and the two commute.
"""

from typing import Iterable

from annuaire.models import MergedResult, PractitionerRole


def _contains(haystack: str | None, needle: str) -> bool:
    return bool(haystack) and needle in haystack.lower()


def _role_in_city(role: PractitionerRole, city: str) -> bool:
    organization = role.organization
    return (
        _contains(role.address, city)
        or _contains(role.city, city)
        or (organization is not None and (
            _contains(organization.city, city)
            or _contains(organization.address, city)
        ))
    )


def filter_by_city(results: Iterable[MergedResult], city: str) -> list[MergedResult]:
    """Keep results with at least one role located in city."""
    needle = city.lower()
    return [r for r in results if any(_role_in_city(role, needle) for role in r.roles)]


def filter_by_specialty(results: Iterable[MergedResult], specialty: str) -> list[MergedResult]:
    """Keep results whose role specialties or qualification labels mention specialty."""
    needle = specialty.lower()
    return [
        r for r in results
        if any(_contains(label, needle) for role in r.roles for label in role.specialties)
        or any(_contains(q.display, needle) for q in r.practitioner.qualifications)
    ]


def apply_post_filters(
    results: Iterable[MergedResult],
    city: str | None = None,
    specialty: str | None = None,
) -> list[MergedResult]:
    filtered = list(results)
    if city:
        filtered = filter_by_city(filtered, city)
    if specialty:
        filtered = filter_by_specialty(filtered, specialty)
    return filtered
