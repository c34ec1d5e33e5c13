"""Shared schema building blocks."""

from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

# Decimals travel as JSON numbers; pydantic would otherwise emit strings
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class CamelModel(BaseModel):
    """Base model whose wire names are camelCase (``totalValue``, ``profitPercent``)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
