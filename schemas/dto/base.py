"""
Shared base for HTTP DTOs.

Python attributes stay snake_case; the JSON wire format is camelCase
(``firstName``, ``isEmailVerified``). Both spellings are accepted on input.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )
