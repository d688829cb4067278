# FILE: veille/services/transcripts/gemini_transcript.py
import logging

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from veille.services.transcripts.base import TranscriptStrategy
from veille.services.transcripts.schema import (
    AISummaryError, TranscriptConfigError, TranscriptResult, TranscriptSource,
    TranscriptionSettings, validate_video_id, video_url,
)

logger = logging.getLogger(__name__)

TRANSCRIPT_PROMPT = """Tu es un assistant de veille technologique.
Analyse cette vidéo YouTube et fournis une transcription fidèle et complète du contenu parlé.

Règles :
- Transcris le contenu parlé le plus fidèlement possible.
- Si la vidéo est très longue (>1h), fournis un résumé très détaillé plutôt qu'une transcription mot à mot.
- Retourne UNIQUEMENT le texte de la transcription, sans formatage JSON, sans titres, sans balises.
- Pas de commentaires, pas d'introduction comme "Voici la transcription".
- Juste le texte brut de ce qui est dit dans la vidéo."""


class GeminiTranscriptService(TranscriptStrategy):
    """Fallback: chiede a Gemini una trascrizione (o un riassunto dettagliato) del video."""
    name = "ai-summary"
    source = TranscriptSource.AI_SUMMARY

    def __init__(self, settings: TranscriptionSettings):
        self.api_key = settings.google_api_key
        self.model_name = settings.gemini_model

    def fetch(self, video_id: str) -> TranscriptResult:
        validate_video_id(video_id)

        if not self.api_key:
            raise TranscriptConfigError("GOOGLE_API_KEY is not configured")

        target_url = video_url(video_id)
        logger.info(f"[Gemini] Richiesta trascrizione per {video_id} con il modello {self.model_name}.")

        try:
            # genai.configure ha effetto globale
            genai.configure(api_key=self.api_key)
            model = genai.GenerativeModel(self.model_name)
            response = model.generate_content([TRANSCRIPT_PROMPT, target_url])
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"[Gemini] Errore API per {video_id}: {e}")
            raise AISummaryError(f"Gemini API error: {e}") from e

        try:
            text = (response.text or '').strip()
        except ValueError:
            # response.text solleva ValueError se la risposta è stata bloccata
            block_reason_obj = getattr(getattr(response, 'prompt_feedback', None), 'block_reason', None)
            block_reason_name = getattr(block_reason_obj, 'name', 'UNKNOWN_REASON')
            logger.warning(f"[Gemini] Risposta bloccata per {video_id}: {block_reason_name}")
            raise AISummaryError(f"Gemini response blocked: {block_reason_name}")

        if not text:
            raise AISummaryError("Gemini returned empty response")

        logger.info(f"[Gemini] Trascrizione ottenuta per {video_id} ({len(text)} caratteri).")
        return TranscriptResult.from_text(text, TranscriptSource.AI_SUMMARY)
