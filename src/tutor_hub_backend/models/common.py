'''
Shared response shapes.
'''
from typing import Generic, TypeVar, Dict, List, Optional

from pydantic import BaseModel, Field

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """A single page of results plus the numbers needed to render a paginator."""
    items: List[T] = Field(default_factory=list)
    total: int
    page: int
    per_page: int
    last_page: int


class MessageResponse(BaseModel):
    message: str


class WizardStepResult(BaseModel):
    """Returned when a wizard step validates successfully."""
    step: int
    next_step: Optional[int] = None
    is_last: bool


class ValidationErrorResponse(BaseModel):
    step: int
    errors: Dict[str, List[str]]
