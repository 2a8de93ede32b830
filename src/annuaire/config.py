"""
Annuaire Configuration Module

Centralized configuration management using Pydantic Settings.
Supports environment variables and .env files.

The registry API key has no default: building the settings without
ESANTE_API_KEY raises at startup instead of sending anonymous calls.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Main application settings."""
    
    model_config = SettingsConfigDict(
        env_prefix="ANNUAIRE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
    
    # Application
    env: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"
    
    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    allow_origins: list[str] = Field(default_factory=lambda: ["*"])


class RegistrySettings(BaseSettings):
    """Annuaire Santé FHIR gateway settings."""
    
    model_config = SettingsConfigDict(
        env_prefix="ESANTE_",
        env_file=".env",
        extra="ignore",
    )
    
    base_url: str = "https://gateway.api.esante.gouv.fr/fhir/v2"
    api_key: SecretStr
    timeout: float = 30.0
    
    # Namespace of national identifiers searched by the identifier lookup
    identifier_system: str = "https://rpps.esante.gouv.fr"
    
    @property
    def normalized_base_url(self) -> str:
        return self.base_url.rstrip("/")


class SearchSettings(BaseSettings):
    """Page sizes and batch ceilings bounding outbound calls per search."""
    
    model_config = SettingsConfigDict(
        env_prefix="ANNUAIRE_SEARCH_",
        env_file=".env",
        extra="ignore",
    )
    
    default_count: int = 50
    max_count: int = 200
    
    # PractitionerRole lookups by practitioner or organization id
    role_batch_size: int = 20
    max_role_batches: int = 10
    role_page_count: int = 200
    
    identifier_page_size: int = 10
    
    # Continuation pages fetched before applying city/specialty post-filters
    filter_extra_pages: int = 2
    
    # Specialty + city reverse lookup
    organization_page_ceiling: int = 5
    organization_page_size: int = 100
    practitioner_batch_ceiling: int = 10
    
    detail_role_count: int = 50
    
    def clamp_count(self, count: int | None) -> int:
        """Clamp a requested page size to [1, max_count]."""
        if count is None:
            count = self.default_count
        return max(1, min(count, self.max_count))


class Settings:
    """
    Aggregated settings container.
    
    Usage:
        from annuaire.config import get_settings
        settings = get_settings()
        print(settings.registry.base_url)
        print(settings.search.max_count)
    """
    
    def __init__(
        self,
        app: AppSettings | None = None,
        registry: RegistrySettings | None = None,
        search: SearchSettings | None = None,
    ):
        self.app = app or AppSettings()
        self.registry = registry or RegistrySettings()
        self.search = search or SearchSettings()
    
    @property
    def is_development(self) -> bool:
        return self.app.env == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    
    Returns:
        Settings: The application settings
        
    Raises:
        pydantic.ValidationError: if required values (ESANTE_API_KEY) are missing
    """
    return Settings()
