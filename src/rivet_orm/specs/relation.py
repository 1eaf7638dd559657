"""
Relationship specification types.

Defines relationship kinds, eager-loading strategies and the descriptor
stored in the type-level relationship registry.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

# =============================================================================
# Relations
# =============================================================================


class RelationKind(str, Enum):
    """Types of relationships between record types."""

    HAS_MANY = "has_many"
    BELONGS_TO = "belongs_to"
    HAS_ONE = "has_one"


class LoadStrategy(str, Enum):
    """How the eager loader fetches a relationship."""

    AUTO = "auto"  # pick by relation kind
    JOIN = "join"  # one INNER JOIN of owner and related tables
    SEPARATE = "separate"  # one IN (...) query against the related table


class RelationSpec(BaseModel):
    """
    Relationship declared on a record type.

    Examples:
        - User has many Posts
          RelationSpec(name="posts", kind="has_many", foreign_key="user_id", related_type_name="Post")

        - Post belongs to User
          RelationSpec(name="user", kind="belongs_to", foreign_key="user_id", related_type_name="User")
    """

    name: str = Field(description="Relationship name")
    kind: RelationKind = Field(description="Relationship type")
    foreign_key: str = Field(
        description="FK column: on the owner table for belongs_to, on the related table otherwise"
    )
    related_type_name: str = Field(description="Name of the related record type")

    model_config = ConfigDict(frozen=True)

    @field_validator("name", "foreign_key")
    @classmethod
    def validate_identifier(cls, v: str) -> str:
        """Relationship names and FK columns must be identifiers."""
        if not v.isidentifier():
            raise ValueError(f"'{v}' is not a valid identifier")
        return v

    @property
    def is_to_one(self) -> bool:
        """Check if this relation resolves to a single record (or None)."""
        return self.kind in (RelationKind.BELONGS_TO, RelationKind.HAS_ONE)

    @property
    def is_to_many(self) -> bool:
        """Check if this relation resolves to a list of records."""
        return self.kind == RelationKind.HAS_MANY

    @property
    def default_strategy(self) -> LoadStrategy:
        """Strategy used when the caller does not force one."""
        return LoadStrategy.SEPARATE if self.is_to_many else LoadStrategy.JOIN
