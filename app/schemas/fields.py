"""
Reusable field types for request validation
"""
from datetime import date, datetime
from typing import Annotated, Optional, Union

from pydantic import Field

# Identifiers coerce from path/query strings and must be positive
ID = Annotated[int, Field(gt=0)]
NullableID = Optional[ID]

MovementTypeValue = Annotated[int, Field(ge=0, le=4)]

# Date-only strings stay dates, anything with a time component becomes a datetime
DateValue = Union[date, datetime]


def nullable_string(max_length: int):
    return Optional[Annotated[str, Field(max_length=max_length)]]


# Finite only; json.loads accepts NaN and Infinity literals
FiniteNumber = Union[int, Annotated[float, Field(allow_inf_nan=False)]]
NonNegativeNumber = Annotated[float, Field(ge=0, allow_inf_nan=False)]
LimitRecords = Annotated[int, Field(ge=1, le=1000)]
