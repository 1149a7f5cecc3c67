'''
API endpoints for the Quran reference module (chapters, verses, audio, tafsirs).
All data comes from Quran.com and is cached for an hour.
'''
from typing import Annotated, Any, List, Optional
from fastapi import APIRouter, Depends, Query

from ..database import models as db_models
from ..models import quran as quran_models
from ..core.quran import filter_chapters, filter_verses, DEFAULT_RECITER_ID
from ..services.security import verify_token_and_get_user
from ..services.quran_service import QuranService, get_quran_service

class QuranAPI:
    def __init__(self):
        self.router = APIRouter(
            prefix="/quran",
            tags=["Quran"]
        )
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
                "/chapters",
                self.list_chapters,
                methods=["GET"])

        self.router.add_api_route(
                "/chapters/{chapter_id}",
                self.get_chapter,
                methods=["GET"])

        self.router.add_api_route(
                "/chapters/{chapter_id}/verses",
                self.get_chapter_verses,
                methods=["GET"])

        self.router.add_api_route(
                "/pages/{page}",
                self.get_page,
                methods=["GET"])

        self.router.add_api_route(
                "/reciters",
                self.list_reciters,
                methods=["GET"],
                response_model=List[quran_models.Reciter])

        self.router.add_api_route(
                "/reciters/{reciter_id}/audio",
                self.get_chapter_audio,
                methods=["GET"],
                response_model=dict[int, quran_models.ChapterAudio])

        self.router.add_api_route(
                "/tafsirs",
                self.list_tafsirs,
                methods=["GET"])

        self.router.add_api_route(
                "/tafsirs/{tafsir_id}",
                self.get_tafsir_info,
                methods=["GET"])

    async def list_chapters(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        quran_service: Annotated[QuranService, Depends(get_quran_service)],
        language: str = "en",
        search: Optional[str] = None
    ) -> List[dict]:
        chapters = await quran_service.get_chapters(language)
        return filter_chapters(chapters, search)

    async def get_chapter(
        self,
        chapter_id: int,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        quran_service: Annotated[QuranService, Depends(get_quran_service)],
        language: str = "en"
    ) -> dict:
        return await quran_service.get_chapter(chapter_id, language)

    async def get_chapter_verses(
        self,
        chapter_id: int,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        quran_service: Annotated[QuranService, Depends(get_quran_service)],
        language: str = "en",
        search: Optional[str] = None,
        verse_number: Annotated[Optional[int], Query(ge=1)] = None
    ) -> List[dict]:
        """
        Every verse of a chapter with word breakdowns and the default translation,
        optionally narrowed by text or verse number.
        """
        verses = await quran_service.get_verses_by_chapter(chapter_id, language)
        return filter_verses(verses, search, verse_number)

    async def get_page(
        self,
        page: int,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        quran_service: Annotated[QuranService, Depends(get_quran_service)],
        language: str = "en",
        reciter_id: int = DEFAULT_RECITER_ID,
        chapter_number: Optional[int] = None
    ) -> dict:
        return await quran_service.get_verses_by_page(page, language, reciter_id, chapter_number)

    async def list_reciters(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        quran_service: Annotated[QuranService, Depends(get_quran_service)],
        language: str = "en"
    ) -> Any:
        return await quran_service.get_reciters(language)

    async def get_chapter_audio(
        self,
        reciter_id: int,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        quran_service: Annotated[QuranService, Depends(get_quran_service)]
    ) -> Any:
        return await quran_service.get_chapter_audio(reciter_id)

    async def list_tafsirs(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        quran_service: Annotated[QuranService, Depends(get_quran_service)],
        language: str = "en"
    ) -> List[dict]:
        return await quran_service.get_tafsirs(language)

    async def get_tafsir_info(
        self,
        tafsir_id: int,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        quran_service: Annotated[QuranService, Depends(get_quran_service)]
    ) -> dict:
        return await quran_service.get_tafsir_info(tafsir_id)

# Instantiate the class and export its router
quran_api = QuranAPI()
router = quran_api.router
