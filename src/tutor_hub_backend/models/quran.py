'''
Shapes returned by the Quran endpoints.
Upstream payloads are passed through as dicts; only the values this
service derives get their own models.
'''
from typing import Optional

from pydantic import BaseModel


class Reciter(BaseModel):
    id: int
    name: str
    style: Optional[str] = None
    translated_name: Optional[str] = None

class ChapterAudio(BaseModel):
    chapter_id: int
    audio_url: str
    file_size: Optional[int] = None
    formatted_size: Optional[str] = None
    format: Optional[str] = None
