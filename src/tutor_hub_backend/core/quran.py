'''
Helpers for the Quran reference module: bounds, filters and formatting.
'''
from typing import Any

FIRST_CHAPTER = 1
LAST_CHAPTER = 114
FIRST_PAGE = 1
LAST_PAGE = 604
DEFAULT_TRANSLATION_ID = 131
DEFAULT_RECITER_ID = 7
VERSE_FIELDS = "text_uthmani,verse_number,page_number"


def is_valid_chapter(chapter_id: int) -> bool:
    return FIRST_CHAPTER <= chapter_id <= LAST_CHAPTER


def clamp_page(page: int) -> int:
    return max(FIRST_PAGE, min(LAST_PAGE, page))


def format_bytes(size: int | float | None, precision: int = 2) -> str:
    """1536 -> '1.5 KB'"""
    if not size or size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    value = float(size)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    return f"{round(value, precision):g} {units[index]}"


def filter_chapters(chapters: list[dict[str, Any]], search: str | None) -> list[dict[str, Any]]:
    """Case-insensitive match on the simple name or the translated name."""
    if not search:
        return chapters
    needle = search.strip().lower()
    return [
        chapter for chapter in chapters
        if needle in str(chapter.get("name_simple", "")).lower()
        or needle in str((chapter.get("translated_name") or {}).get("name", "")).lower()
        or needle == str(chapter.get("id"))
    ]


def _verse_text(verse: dict[str, Any]) -> str:
    parts = [str(verse.get("text_uthmani", ""))]
    parts.extend(str(t.get("text", "")) for t in verse.get("translations") or [])
    return " ".join(parts).lower()


def filter_verses(
    verses: list[dict[str, Any]],
    search: str | None = None,
    verse_number: int | None = None,
) -> list[dict[str, Any]]:
    """Narrows verses by verse number and/or by text in the Arabic or a translation."""
    result = verses
    if verse_number is not None:
        result = [v for v in result if v.get("verse_number") == verse_number]
    if search:
        needle = search.strip().lower()
        result = [v for v in result if needle in _verse_text(v)]
    return result
