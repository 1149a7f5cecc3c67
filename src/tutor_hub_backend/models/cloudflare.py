'''
Payloads forwarded to the Cloudflare D1 worker.
'''
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class D1UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr

class D1UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
