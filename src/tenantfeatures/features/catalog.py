"""Feature catalog: the ordered set of known features and their defaults."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass


@dataclass(frozen=True)
class FeatureDefinition:
    """A known feature and its catalog-wide default value."""

    name: str
    default_value: str
    display_name: str = ""
    description: str = ""


class FeatureCatalog:
    """In-memory registry of feature definitions, kept in registration order."""

    def __init__(self, definitions: Iterable[FeatureDefinition] | None = None) -> None:
        self._features: dict[str, FeatureDefinition] = {}
        for definition in definitions or ():
            self.register(definition)

    @classmethod
    def from_mapping(cls, defaults: Mapping[str, str]) -> FeatureCatalog:
        """Build a catalog from a name -> default value mapping."""
        return cls(FeatureDefinition(name=name, default_value=value) for name, value in defaults.items())

    def register(self, definition: FeatureDefinition) -> None:
        name = definition.name
        if not name.strip():
            raise ValueError("Feature name cannot be empty")
        if name in self._features:
            raise ValueError(f"Feature already registered: {name}")
        self._features[name] = definition

    def get(self, name: str) -> FeatureDefinition:
        try:
            return self._features[name]
        except KeyError as exc:
            raise KeyError(f"Unknown feature: {name}") from exc

    def get_or_none(self, name: str) -> FeatureDefinition | None:
        return self._features.get(name)

    def get_all(self) -> list[FeatureDefinition]:
        return list(self._features.values())

    def __contains__(self, name: object) -> bool:
        return name in self._features

    def __len__(self) -> int:
        return len(self._features)
