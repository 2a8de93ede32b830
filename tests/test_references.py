import pytest

from annuaire.errors import MalformedReferenceError
from annuaire.fhir.references import Reference, parse_reference, reference_id


@pytest.mark.parametrize(
    "value",
    [
        "Practitioner/003-123",
        "https://gateway.api.esante.gouv.fr/fhir/v2/Practitioner/003-123",
        "Practitioner/003-123/_history/4",
    ],
)
def test_parse_reference_forms(value):
    assert parse_reference(value, "Practitioner") == Reference("Practitioner", "003-123")


@pytest.mark.parametrize("value", ["", "Practitioner", "Practitioner/", "003-123", "practitioner/1", "Practitioner/a b"])
def test_malformed_references_raise(value):
    with pytest.raises(MalformedReferenceError):
        parse_reference(value)


def test_unexpected_type_raises():
    with pytest.raises(MalformedReferenceError) as exc_info:
        parse_reference("Organization/o1", "Practitioner")
    assert exc_info.value.expected_type == "Practitioner"


def test_reference_id_absent_element():
    assert reference_id(None, "Organization") is None
    assert reference_id({}, "Organization") is None
    assert reference_id({"display": "Cabinet"}, "Organization") is None
    assert reference_id({"reference": "Organization/o1"}, "Organization") == "o1"


def test_reference_str():
    assert str(Reference("Organization", "o1")) == "Organization/o1"
