"""
Schemas shared by several endpoints.
"""

from pydantic import BaseModel


class ActionResult(BaseModel):
    """
    Outcome of an operation that returns no resource.

    warning is set when the operation succeeded but left something
    the caller must know about, e.g. an entry deleted without its
    balance impact being reversed.
    """
    success: bool
    message: str
    warning: str | None = None
