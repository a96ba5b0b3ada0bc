from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SockIn(BaseModel):
    """Request body for income / outcome / update.

    Missing numbers default to 0, which the rules reject as an invalid quantity.
    """
    model_config = ConfigDict(populate_by_name=True)

    color: Optional[str] = None
    cotton_percentage: int = Field(0, alias="cottonPercentage")
    quantity: int = 0


class SockRead(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    color: Optional[str] = None
    cotton_percentage: int = Field(alias="cottonPercentage")
    quantity: int


class SockPage(BaseModel):
    items: List[SockRead]
    total: int
    page: int
    size: int
    pages: int
