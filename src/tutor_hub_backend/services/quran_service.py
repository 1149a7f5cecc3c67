'''
Client for the Quran.com v4 content API.
Successful responses are memoized in the cache for QURAN_CACHE_TTL seconds,
keyed by the endpoint and every request parameter.
'''
from typing import Annotated, Any, Optional

import httpx
from fastapi import Depends, HTTPException, status

from ..common.cache import Cache, get_cache
from ..common.config import settings
from ..common.exceptions import QuranAPIError
from ..common.logger import log
from ..core.quran import (
    is_valid_chapter, clamp_page, format_bytes,
    DEFAULT_TRANSLATION_ID, DEFAULT_RECITER_ID, VERSE_FIELDS, FIRST_CHAPTER, LAST_CHAPTER,
)

VERSES_PER_CHAPTER_PAGE = 286


class QuranService:
    def __init__(
        self,
        cache: Cache,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.cache = cache
        self.base_url = (base_url or settings.QURAN_API_URL).rstrip("/")
        self._transport = transport

    @staticmethod
    def cache_key(path: str, params: dict[str, Any]) -> str:
        query = "&".join(f"{key}={params[key]}" for key in sorted(params))
        return f"quran:{path}?{query}"

    async def _fetch(self, path: str, params: dict[str, Any]) -> dict:
        """GETs `path` and returns the JSON body. Errors are never cached."""
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT, transport=self._transport) as client:
                response = await client.get(url, params=params)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            log.error(f"Quran API returned {e.response.status_code} for {path}.")
            raise QuranAPIError(f"Quran API returned {e.response.status_code} for {path}.") from e
        except httpx.RequestError as e:
            log.error(f"Quran API request to {path} failed: {e}", exc_info=True)
            raise QuranAPIError(f"Quran API is unreachable: {e}") from e
        except ValueError as e:
            raise QuranAPIError(f"Quran API sent an invalid response for {path}.") from e

    async def _get(self, path: str, **params: Any) -> dict:
        return await self.cache.remember(
            self.cache_key(path, params),
            settings.QURAN_CACHE_TTL,
            lambda: self._fetch(path, params),
        )

    @staticmethod
    def _check_chapter(chapter_id: int):
        if not is_valid_chapter(chapter_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Chapter must be between {FIRST_CHAPTER} and {LAST_CHAPTER}."
            )

    # --- Chapters & verses ---

    async def get_chapters(self, language: str = "en") -> list[dict]:
        body = await self._get("/chapters", language=language)
        return body.get("chapters", [])

    async def get_chapter(self, chapter_id: int, language: str = "en") -> dict:
        self._check_chapter(chapter_id)
        body = await self._get(f"/chapters/{chapter_id}", language=language)
        return body.get("chapter", {})

    async def get_verses_by_chapter(self, chapter_id: int, language: str = "en") -> list[dict]:
        self._check_chapter(chapter_id)
        body = await self._get(
            f"/verses/by_chapter/{chapter_id}",
            language=language,
            words="true",
            translations=DEFAULT_TRANSLATION_ID,
            fields=VERSE_FIELDS,
            per_page=VERSES_PER_CHAPTER_PAGE,
        )
        return body.get("verses", [])

    async def get_verses_by_page(
        self,
        page: int,
        language: str = "en",
        reciter_id: int = DEFAULT_RECITER_ID,
        chapter_number: Optional[int] = None,
    ) -> dict:
        """
        One mushaf page (clamped to 1-604) with audio for `reciter_id`.
        With `chapter_number`, only that chapter's verses on the page are kept.
        """
        page = clamp_page(page)
        body = await self._get(
            f"/verses/by_page/{page}",
            language=language,
            words="true",
            translations=DEFAULT_TRANSLATION_ID,
            audio=reciter_id,
            fields=VERSE_FIELDS,
        )
        verses = body.get("verses", [])
        if chapter_number is not None:
            prefix = f"{chapter_number}:"
            verses = [v for v in verses if str(v.get("verse_key", "")).startswith(prefix)]
        return {"page": page, "verses": verses, "pagination": body.get("pagination")}

    # --- Recitations ---

    async def get_reciters(self, language: str = "en") -> list[dict]:
        body = await self._get("/resources/recitations", language=language)
        return [
            {
                "id": reciter["id"],
                "name": reciter.get("reciter_name", ""),
                "style": reciter.get("style"),
                "translated_name": (reciter.get("translated_name") or {}).get("name"),
            }
            for reciter in body.get("recitations", [])
        ]

    async def get_chapter_audio(self, reciter_id: int) -> dict[str, dict]:
        """Audio files of a reciter keyed by chapter id, with readable sizes."""
        body = await self._get(f"/chapter_recitations/{reciter_id}")
        audio: dict[str, dict] = {}
        for item in body.get("audio_files", []):
            audio[str(item["chapter_id"])] = {
                "chapter_id": item["chapter_id"],
                "audio_url": item.get("audio_url", ""),
                "file_size": item.get("file_size"),
                "formatted_size": format_bytes(item.get("file_size")),
                "format": item.get("format"),
            }
        return audio

    # --- Tafsirs ---

    async def get_tafsirs(self, language: str = "en") -> list[dict]:
        body = await self._get("/resources/tafsirs", language=language)
        return body.get("tafsirs", [])

    async def get_tafsir_info(self, tafsir_id: int) -> dict:
        body = await self._get(f"/resources/tafsirs/{tafsir_id}/info")
        return body.get("info", {})


def get_quran_service(cache: Annotated[Cache, Depends(get_cache)]) -> QuranService:
    return QuranService(cache)
