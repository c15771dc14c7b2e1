from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, PlainSerializer

# Monetary values are Decimal internally and plain JSON numbers on the wire
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class MessageResponse(BaseModel):
    """Acknowledgment returned by export/print stubs."""
    message: str


class LockResult(BaseModel):
    success: bool = True
    locked_count: int
