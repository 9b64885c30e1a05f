"""
Base Repository

Shared plumbing for the Neo4j-backed repositories: turning stored node
property maps into validated models.
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from builderfolio.database.client import Neo4jClient

T = TypeVar("T", bound=BaseModel)


class BaseRepository(ABC, Generic[T]):
    """
    Subclasses name their node label and model class, and override
    _from_node() when stored properties differ in shape from the model.
    """

    def __init__(self, client: Neo4jClient):
        self.client = client
        self.logger = structlog.get_logger(self.__class__.__name__)

    @property
    @abstractmethod
    def node_label(self) -> str:
        """Neo4j label of the stored nodes."""

    @property
    @abstractmethod
    def model_class(self) -> type[T]:
        """Model each node is validated into."""

    def _now(self) -> datetime:
        return datetime.now(UTC)

    def _from_node(self, node: dict[str, Any]) -> dict[str, Any]:
        return dict(node)

    def _to_model(self, record: dict[str, Any] | None) -> T | None:
        """Validate a node property map, or return None when it does not fit the model."""
        if not record:
            return None
        try:
            return self.model_class.model_validate(self._from_node(record))
        except ValidationError as e:
            self.logger.error(
                "record_conversion_failed",
                label=self.node_label,
                error=str(e),
                record_keys=sorted(record),
            )
            return None

    def _to_models(self, records: list[dict[str, Any]]) -> list[T]:
        models = (self._to_model(r) for r in records)
        return [m for m in models if m is not None]
