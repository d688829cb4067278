# FILE: veille/services/transcripts/schema.py
"""
Contratti condivisi del sottosistema di trascrizione:
risultato, sorgente, errori, impostazioni e validazione dell'ID video.
"""
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

VALID_VIDEO_ID = re.compile(r'^[A-Za-z0-9_-]{11}$')
YOUTUBE_WATCH_URL = "https://www.youtube.com/watch?v={video_id}"


class TranscriptSource(str, Enum):
    CAPTIONS = "captions"
    AI_SUMMARY = "ai-summary"


class TranscriptResult(BaseModel):
    """Risultato di una trascrizione riuscita. Immutabile, mai vuoto."""
    model_config = ConfigDict(frozen=True)

    content: str
    source: TranscriptSource
    segment_count: int

    @field_validator('content')
    @classmethod
    def content_not_empty(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Il contenuto della trascrizione non può essere vuoto.")
        return value

    @classmethod
    def from_text(cls, content: str, source: TranscriptSource) -> "TranscriptResult":
        return cls(content=content, source=source, segment_count=count_segments(content))


# --- Errori ---

class TranscriptError(Exception):
    """Base di tutti gli errori di acquisizione trascrizione."""


class InvalidVideoIdError(TranscriptError):
    pass


class TranscriptConfigError(TranscriptError):
    pass


class CaptionFetchError(TranscriptError):
    pass


class AISummaryError(TranscriptError):
    pass


class TranscriptionError(TranscriptError):
    """Fallimento finale: nessuna strategia ha prodotto una trascrizione."""


# --- Impostazioni esplicite ---

@dataclass(frozen=True)
class TranscriptionSettings:
    """
    Configurazione del sottosistema, costruita una volta all'avvio
    e passata ai costruttori (niente letture di os.environ sparse).
    """
    work_dir: str
    google_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.0-flash"
    ytdlp_binary: str = "yt-dlp"
    cookies_browser: Optional[str] = "chrome"
    extra_path: Optional[str] = None
    languages: List[str] = field(default_factory=lambda: ['fr', 'en'])
    timeout_seconds: int = 120
    max_output_bytes: int = 10 * 1024 * 1024

    @classmethod
    def from_config(cls, config) -> "TranscriptionSettings":
        """Costruisce le impostazioni da un dict/config Flask."""
        return cls(
            work_dir=config.get('TRANSCRIPT_WORK_DIR'),
            google_api_key=config.get('GOOGLE_API_KEY'),
            gemini_model=config.get('GEMINI_TRANSCRIPT_MODEL', 'gemini-2.0-flash'),
            ytdlp_binary=config.get('YTDLP_BINARY', 'yt-dlp'),
            cookies_browser=config.get('YTDLP_COOKIES_BROWSER', 'chrome'),
            extra_path=config.get('YTDLP_EXTRA_PATH'),
            languages=list(config.get('CAPTION_LANGUAGES', ['fr', 'en'])),
            timeout_seconds=config.get('CAPTION_TIMEOUT_SECONDS', 120),
            max_output_bytes=config.get('CAPTION_MAX_OUTPUT_BYTES', 10 * 1024 * 1024),
        )


# --- Helper ---

def is_valid_video_id(video_id) -> bool:
    return isinstance(video_id, str) and VALID_VIDEO_ID.fullmatch(video_id) is not None


def validate_video_id(video_id) -> str:
    """Solleva InvalidVideoIdError se l'ID non rispetta il formato (11 caratteri)."""
    if not is_valid_video_id(video_id):
        raise InvalidVideoIdError(f"Invalid video ID format: {video_id!r}")
    return video_id


def video_url(video_id: str) -> str:
    return YOUTUBE_WATCH_URL.format(video_id=validate_video_id(video_id))


def count_segments(content: str) -> int:
    # Paragrafi = parti non vuote separate da una riga vuota
    return len([part for part in content.split('\n\n') if part.strip()])
