"""
Common models used across the cube.
"""

from typing import Any

from pydantic import BaseModel as PydanticBase, ConfigDict


class BaseModel(PydanticBase):
    """Base model for all models"""

    # non-finite ratios serialize as null in JSON
    model_config = ConfigDict(use_enum_values=True, ser_json_inf_nan="null")

    def to_dict(self) -> dict[str, Any]:
        """Convert the model to a dictionary."""
        return self.model_dump(mode="json")
