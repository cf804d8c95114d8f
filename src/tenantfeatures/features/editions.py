"""
Edition-level feature defaults.

The resolution engine only depends on the EditionDefaultResolver protocol;
EditionFeatureStore is the database-backed implementation over the
edition_feature_settings table.
"""

from __future__ import annotations

from typing import Optional, Protocol

from sqlalchemy.orm import Session

from tenantfeatures.db.models import EditionFeatureSetting


class EditionDefaultResolver(Protocol):
    def get_feature_value_or_none(self, edition_id: int, name: str) -> Optional[str]:
        """Return the edition's value for the feature, or None if it sets none."""
        ...


class EditionFeatureStore:
    """Edition feature values stored in the database."""

    def __init__(self, db: Session):
        self.db = db

    def get_feature_value_or_none(self, edition_id: int, name: str) -> Optional[str]:
        row = (
            self.db.query(EditionFeatureSetting)
            .filter(
                EditionFeatureSetting.edition_id == edition_id,
                EditionFeatureSetting.name == name,
            )
            .first()
        )
        return row.value if row is not None else None

    def set_feature_value(self, edition_id: int, name: str, value: str) -> EditionFeatureSetting:
        """Insert or update an edition's value for a feature."""
        row = (
            self.db.query(EditionFeatureSetting)
            .filter(
                EditionFeatureSetting.edition_id == edition_id,
                EditionFeatureSetting.name == name,
            )
            .first()
        )
        if row is None:
            row = EditionFeatureSetting(edition_id=edition_id, name=name, value=value)
            self.db.add(row)
        else:
            row.value = value
        self.db.flush()
        return row
