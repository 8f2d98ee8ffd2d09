"""Base model class for localbridge result models with serialization support."""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict


class LocalBridgeModel(BaseModel):
    """Base model for catalog and result models.

    Provides ``to_dict()`` producing plain JSON-ready dictionaries, with enums
    flattened to their values and nested models converted recursively.
    """
    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        use_enum_values=True,
        validate_assignment=True
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary for serialization.

        ``None`` fields are kept: tool payloads report absent defaults and
        unknown row counts as ``null`` rather than dropping the key.
        """
        return self.model_dump(mode="python", by_alias=True)
