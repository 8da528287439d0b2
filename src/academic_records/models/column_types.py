# src/academic_records/models/column_types.py
from typing import Annotated

from pydantic import Field

# PostgreSQL INTEGER range; larger values are rejected before they are bound.
Int4 = Annotated[int, Field(ge=-(2**31), le=2**31 - 1)]
