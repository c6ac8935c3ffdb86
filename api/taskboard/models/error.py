from pydantic import BaseModel


class ErrorDetail(BaseModel):
    """Body of every task-board error response: {"detail": "<message>"}."""

    detail: str
