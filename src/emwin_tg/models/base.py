"""Base models and shared types.

Example:
    >>> from emwin_tg.models.base import EmwinModel
    >>> EmwinModel.model_config["extra"]
    'forbid'
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class EmwinModel(BaseModel):
    """Base model with standard configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        validate_assignment=True,
        extra="forbid",
    )
