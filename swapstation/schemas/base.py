from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class FormModel(BaseModel):
    """Base for request forms: accepts field names or their camelCase aliases.

    Defaults are validated too, so an omitted required field reports the same
    localized message as an empty one.
    """

    model_config = ConfigDict(populate_by_name=True, validate_default=True)
