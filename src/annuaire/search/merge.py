"""
Join/merge engine.

Practitioners, roles and organizations arrive from separate queries and
are joined by id. Organizations are attached onto roles; roles are
grouped under their practitioner.
"""

from typing import Iterable, Mapping, Union

from annuaire.models import MergedResult, Organization, Practitioner, PractitionerRole

Organizations = Union[Mapping[str, Organization], Iterable[Organization]]


def index_organizations(organizations: Organizations) -> dict[str, Organization]:
    if isinstance(organizations, Mapping):
        return dict(organizations)
    return {org.id: org for org in organizations}


def dedupe_roles(roles: Iterable[PractitionerRole]) -> dict[str, PractitionerRole]:
    """Roles by id; the last one seen wins."""
    by_id: dict[str, PractitionerRole] = {}
    for role in roles:
        by_id[role.id] = role
    return by_id


def attach_organizations(
    roles: Iterable[PractitionerRole],
    organizations: Mapping[str, Organization],
) -> None:
    for role in roles:
        if role.organization_id and role.organization_id in organizations:
            role.attach_organization(organizations[role.organization_id])


def group_roles(roles: Iterable[PractitionerRole]) -> dict[str, list[PractitionerRole]]:
    """
    Roles keyed by practitioner id, each group sorted by role id.
    
    A role without practitioner reference forms its own group under a
    synthetic "role:<id>" key.
    """
    groups: dict[str, list[PractitionerRole]] = {}
    for role in roles:
        key = role.practitioner_id or f"role:{role.id}"
        groups.setdefault(key, []).append(role)
    for group in groups.values():
        group.sort(key=lambda r: r.id)
    return groups


def merge(
    practitioners: Iterable[Practitioner],
    roles: Iterable[PractitionerRole],
    organizations: Organizations,
) -> list[MergedResult]:
    """
    Left join of practitioners with their roles.
    
    Every practitioner yields one result, in input order, even without
    roles. Roles of unknown practitioners are dropped.
    """
    orgs = index_organizations(organizations)
    unique_roles = dedupe_roles(roles).values()
    attach_organizations(unique_roles, orgs)
    groups = group_roles(r for r in unique_roles if r.practitioner_id)
    
    results = []
    seen: set[str] = set()
    for practitioner in practitioners:
        if practitioner.id in seen:
            continue
        seen.add(practitioner.id)
        results.append(MergedResult(practitioner, list(groups.get(practitioner.id, []))))
    return results


def merge_role_groups(
    roles: Iterable[PractitionerRole],
    organizations: Organizations,
    practitioners: Iterable[Practitioner] = (),
) -> list[MergedResult]:
    """
    Right join from the role side.
    
    One result per practitioner referenced by a role, in order of first
    reference. Practitioners missing from `practitioners` are synthesized
    with empty names instead of dropped.
    """
    orgs = index_organizations(organizations)
    known = {p.id: p for p in practitioners}
    unique_roles = dedupe_roles(roles).values()
    attach_organizations(unique_roles, orgs)
    
    results = []
    for key, group in group_roles(unique_roles).items():
        practitioner = known.get(key)
        if practitioner is not None:
            results.append(MergedResult(practitioner, group))
        else:
            results.append(MergedResult(Practitioner.placeholder(key), group, synthetic=True))
    return results
