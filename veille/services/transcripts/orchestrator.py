# FILE: veille/services/transcripts/orchestrator.py
"""
Orchestratore delle strategie di trascrizione.
Prova le strategie in ordine e restituisce il primo successo.
"""
import logging
import time
from typing import List, Optional, Sequence

from veille.services.transcripts.base import AcquisitionOutcome, TranscriptStrategy
from veille.services.transcripts.caption_fetcher import CaptionFetcher
from veille.services.transcripts.gemini_transcript import GeminiTranscriptService
from veille.services.transcripts.schema import (
    TranscriptResult, TranscriptionError, TranscriptionSettings, validate_video_id,
)

logger = logging.getLogger(__name__)


class TranscriptionOrchestrator:
    def __init__(self, strategies: Sequence[TranscriptStrategy]):
        if not strategies:
            raise ValueError("Serve almeno una strategia di trascrizione.")
        self.strategies = list(strategies)

    @classmethod
    def from_settings(cls, settings: TranscriptionSettings) -> "TranscriptionOrchestrator":
        """Catena di riferimento: sottotitoli yt-dlp, poi fallback Gemini."""
        return cls([CaptionFetcher(settings), GeminiTranscriptService(settings)])

    def transcribe(self, video_id: str) -> TranscriptResult:
        validate_video_id(video_id)
        start = time.time()
        outcomes: List[AcquisitionOutcome] = []

        for strategy in self.strategies:
            outcome = strategy.attempt(video_id)
            outcomes.append(outcome)
            if outcome.succeeded:
                logger.info(f"[{video_id}] Trascrizione ottenuta con '{outcome.strategy}' "
                            f"in {time.time() - start:.1f}s.")
                return outcome.result
            logger.info(f"[{video_id}] '{outcome.strategy}' non disponibile ({outcome.error}). Passo alla prossima strategia.")

        last_error: Optional[Exception] = outcomes[-1].error
        logger.error(f"[{video_id}] Tutte le strategie di trascrizione fallite: "
                     f"{[(o.strategy, str(o.error)) for o in outcomes]}")
        raise TranscriptionError(f"Failed to get transcript: {last_error}") from last_error
