"""
Tests for the join/merge engine.
"""

import random

import pytest

from annuaire.fhir.normalizer import parse_organization, parse_practitioner, parse_practitioner_role
from annuaire.models import Organization, PractitionerRole
from annuaire.search.merge import merge, merge_role_groups

from builders import organization, practitioner, role


def _fixture_graph():
    practitioners = [parse_practitioner(practitioner(f"p{i}", f"NOM{i}")) for i in range(4)]
    roles = [
        parse_practitioner_role(role("r1", "p0", "o1", ["Cardiologie"])),
        parse_practitioner_role(role("r2", "p0", "o2")),
        parse_practitioner_role(role("r3", "p1", "o1")),
        parse_practitioner_role(role("r4", "p9", "o1")),
        parse_practitioner_role(role("r5", "p2", "o-missing")),
    ]
    organizations = [
        parse_organization(organization("o1", "Clinique", "Lyon")),
        parse_organization(organization("o2", "Cabinet", "Paris")),
    ]
    return practitioners, roles, organizations


def _snapshot(results):
    return [result.to_dict() for result in results]


class TestMerge:
    
    def test_left_join_keeps_practitioners_without_roles(self):
        practitioners, roles, organizations = _fixture_graph()
        
        results = merge(practitioners, roles, organizations)
        
        assert [r.id for r in results] == ["p0", "p1", "p2", "p3"]
        assert [role.id for role in results[0].roles] == ["r1", "r2"]
        assert results[3].roles == []
    
    def test_organizations_attached(self):
        practitioners, roles, organizations = _fixture_graph()
        
        results = merge(practitioners, roles, organizations)
        
        assert results[0].roles[0].organization.name == "Clinique"
        assert results[0].roles[1].organization.city == "Paris"
        assert results[2].roles[0].organization is None
    
    def test_roles_of_unknown_practitioners_dropped(self):
        practitioners, roles, organizations = _fixture_graph()
        
        results = merge(practitioners, roles, organizations)
        
        assert all(role.id != "r4" for r in results for role in r.roles)
    
    def test_reordering_inputs_gives_same_result(self):
        practitioners, roles, organizations = _fixture_graph()
        expected = _snapshot(merge(practitioners, roles, organizations))
        
        rng = random.Random(7)
        for _ in range(5):
            practitioners, roles, organizations = _fixture_graph()
            rng.shuffle(roles)
            rng.shuffle(organizations)
            assert _snapshot(merge(practitioners, roles, organizations)) == expected
    
    def test_no_duplicate_role_ids(self):
        practitioners, roles, organizations = _fixture_graph()
        duplicated = roles + [parse_practitioner_role(role("r1", "p0", "o1", ["Cardiologie"]))]
        
        results = merge(practitioners, duplicated, organizations)
        
        role_ids = [role.id for role in results[0].roles]
        assert role_ids == sorted(set(role_ids))
    
    def test_accepts_organization_mapping(self):
        practitioners, roles, organizations = _fixture_graph()
        
        results = merge(practitioners, roles, {o.id: o for o in organizations})
        
        assert results[1].roles[0].organization.id == "o1"


class TestMergeRoleGroups:
    
    def test_missing_practitioner_is_synthesized(self):
        roles = [
            parse_practitioner_role(role("r1", "p1", "o1")),
            parse_practitioner_role(role("r2", "p2", "o1")),
            parse_practitioner_role(role("r3", "p1", "o1")),
        ]
        practitioners = [parse_practitioner(practitioner("p1", "DUPONT", "Marie"))]
        
        results = merge_role_groups(roles, [parse_organization(organization("o1", city="Lyon"))], practitioners)
        
        assert [r.id for r in results] == ["p1", "p2"]
        assert [role.id for role in results[0].roles] == ["r1", "r3"]
        assert results[1].synthetic is True
        assert results[1].practitioner.last_name == ""
        assert results[1].practitioner.first_name == ""
    
    def test_role_without_practitioner_gets_synthetic_key(self):
        results = merge_role_groups([parse_practitioner_role(role("r1", None, "o1"))], [])
        
        assert results[0].id == "role:r1"
        assert results[0].synthetic is True


class TestAttachOrganization:
    
    def test_attach_is_idempotent(self):
        org = Organization(id="o1", name="Clinique")
        practitioner_role = PractitionerRole(id="r1", organization_id="o1")
        
        practitioner_role.attach_organization(org)
        practitioner_role.attach_organization(Organization(id="o1", name="Autre nom"))
        
        assert practitioner_role.organization.name == "Clinique"
    
    def test_attach_foreign_organization_refused(self):
        practitioner_role = PractitionerRole(id="r1", organization_id="o1")
        
        with pytest.raises(ValueError):
            practitioner_role.attach_organization(Organization(id="o2"))
