"""Pytest configuration and fixtures."""

import pytest

from annuaire.config import RegistrySettings, SearchSettings

from builders import BASE_URL, FakeRegistry


@pytest.fixture
def registry() -> FakeRegistry:
    return FakeRegistry()


@pytest.fixture
def search_settings() -> SearchSettings:
    return SearchSettings(
        default_count=50,
        max_count=200,
        role_batch_size=20,
        max_role_batches=10,
        filter_extra_pages=2,
        organization_page_ceiling=5,
        practitioner_batch_ceiling=10,
    )


@pytest.fixture
def registry_settings() -> RegistrySettings:
    return RegistrySettings(base_url=BASE_URL, api_key="test-key")
