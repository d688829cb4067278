# FILE: veille/services/transcripts/base.py
"""
Strategia di acquisizione: interfaccia comune alle sorgenti di trascrizione.
Ogni tentativo produce un AcquisitionOutcome tipizzato (successo o errore).
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from veille.services.transcripts.schema import TranscriptResult, TranscriptSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AcquisitionOutcome:
    strategy: str
    result: Optional[TranscriptResult] = None
    error: Optional[Exception] = None

    @property
    def succeeded(self) -> bool:
        return self.result is not None


class TranscriptStrategy(ABC):
    name: str = "base"
    source: TranscriptSource

    @abstractmethod
    def fetch(self, video_id: str) -> TranscriptResult:
        """Restituisce la trascrizione o solleva un TranscriptError."""

    def attempt(self, video_id: str) -> AcquisitionOutcome:
        try:
            return AcquisitionOutcome(strategy=self.name, result=self.fetch(video_id))
        except Exception as e:
            logger.warning(f"[{video_id}] Strategia '{self.name}' fallita: {e}")
            return AcquisitionOutcome(strategy=self.name, error=e)
