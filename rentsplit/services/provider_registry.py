"""Provider registry: read-only lookup of rate tables loaded from JSON.

The JSON file holds a "providers" list; each entry is validated into a frozen
RateTable. Several versions of one provider may coexist, and lookups return
the latest version unless a version is requested.
"""

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from rentsplit.config import DEFAULT_RATE_TABLES_PATH, get_settings
from rentsplit.errors import ConfigurationError
from rentsplit.models.rate_table import RateTable, ServiceArea, UtilityKind

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Rate tables keyed by provider id, in load order."""

    def __init__(self, rate_tables: Iterable[RateTable]):
        self._tables: dict[str, list[RateTable]] = {}
        for table in rate_tables:
            versions = self._tables.setdefault(table.provider_id, [])
            if any(t.version == table.version for t in versions):
                raise ConfigurationError(
                    f"Duplicate rate table {table.provider_id} version {table.version}"
                )
            versions.append(table)
        for versions in self._tables.values():
            versions.sort(key=lambda t: t.version)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProviderRegistry":
        """Build a registry from parsed JSON data.

        Raises:
            ConfigurationError: If the data has no providers list or any entry is invalid
        """
        entries = data.get("providers")
        if not isinstance(entries, list):
            raise ConfigurationError("Rate table data must contain a 'providers' list")

        tables = []
        for index, entry in enumerate(entries):
            provider_id = entry.get("provider_id", f"#{index}") if isinstance(entry, dict) else index
            try:
                tables.append(RateTable.model_validate(entry))
            except ValidationError as e:
                raise ConfigurationError(f"Invalid rate table for {provider_id}: {e}") from e
        return cls(tables)

    @classmethod
    def from_file(cls, path: str | Path) -> "ProviderRegistry":
        """Load a registry from a JSON file.

        Raises:
            ConfigurationError: If the file is missing, unreadable or invalid
        """
        config_path = Path(path)
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            logger.error("Rate tables not found at %s", config_path)
            raise ConfigurationError(f"Rate table file not found: {config_path}") from e
        except json.JSONDecodeError as e:
            logger.error("Failed to parse %s: %s", config_path, e)
            raise ConfigurationError(f"Rate table file is not valid JSON: {config_path}") from e

        registry = cls.from_dict(data)
        logger.info("Loaded %d rate tables from %s", len(registry), config_path)
        return registry

    def __len__(self) -> int:
        return sum(len(versions) for versions in self._tables.values())

    def __contains__(self, provider_id: object) -> bool:
        return provider_id in self._tables

    def get(self, provider_id: str, version: str | None = None) -> RateTable:
        """Get a provider's rate table (latest version by default).

        Raises:
            ConfigurationError: If the provider or version is unknown
        """
        versions = self._tables.get(provider_id)
        if not versions:
            raise ConfigurationError(f"Unknown provider: {provider_id}")
        if version is None:
            return versions[-1]
        for table in versions:
            if table.version == version:
                return table
        raise ConfigurationError(f"Unknown version {version} for provider {provider_id}")

    def all(self) -> list[RateTable]:
        """Latest rate table of every provider, in load order."""
        return [versions[-1] for versions in self._tables.values()]

    def by_kind(self, kind: UtilityKind) -> list[RateTable]:
        return [t for t in self.all() if t.utility_kind == kind]

    def providers_for(self, kind: UtilityKind, area: ServiceArea) -> list[RateTable]:
        """Providers of a utility kind serving an area."""
        return [t for t in self.by_kind(kind) if t.serves(area)]

    def electricity_provider_for(self, area: ServiceArea) -> RateTable | None:
        providers = self.providers_for(UtilityKind.ELECTRICITY, area)
        return providers[0] if providers else None

    def water_provider_for(self, area: ServiceArea) -> RateTable | None:
        providers = self.providers_for(UtilityKind.WATER, area)
        return providers[0] if providers else None

    def internet_providers_for(self, area: ServiceArea) -> list[RateTable]:
        return self.providers_for(UtilityKind.INTERNET, area)


_registry_instance: Optional[ProviderRegistry] = None


def get_registry() -> ProviderRegistry:
    """Get or create the default registry.

    Loads RENTSPLIT_RATE_TABLES_PATH when set, otherwise the packaged tables.
    """
    global _registry_instance
    if _registry_instance is None:
        path = get_settings().rate_tables_path or DEFAULT_RATE_TABLES_PATH
        _registry_instance = ProviderRegistry.from_file(path)
    return _registry_instance


def reset_registry() -> None:
    """Drop the cached default registry."""
    global _registry_instance
    _registry_instance = None
