import pytest

from veille.services.transcripts.base import TranscriptStrategy
from veille.services.transcripts.caption_fetcher import CaptionFetcher
from veille.services.transcripts.gemini_transcript import GeminiTranscriptService
from veille.services.transcripts.orchestrator import TranscriptionOrchestrator
from veille.services.transcripts.schema import (
    AISummaryError, CaptionFetchError, InvalidVideoIdError, TranscriptResult,
    TranscriptSource, TranscriptionError, TranscriptionSettings,
)

VIDEO_ID = 'dQw4w9WgXcQ'


class FakeStrategy(TranscriptStrategy):
    def __init__(self, name, source, content=None, error=None):
        self.name = name
        self.source = source
        self.content = content
        self.error = error
        self.calls = []

    def fetch(self, video_id):
        self.calls.append(video_id)
        if self.error:
            raise self.error
        return TranscriptResult.from_text(self.content, self.source)


def test_first_success_wins():
    captions = FakeStrategy('captions', TranscriptSource.CAPTIONS, content="Bonjour à tous")
    fallback = FakeStrategy('ai-summary', TranscriptSource.AI_SUMMARY, content="riassunto")

    result = TranscriptionOrchestrator([captions, fallback]).transcribe(VIDEO_ID)

    assert result.source == TranscriptSource.CAPTIONS
    assert result.content == "Bonjour à tous"
    assert fallback.calls == []


def test_fallback_used_when_captions_fail():
    captions = FakeStrategy('captions', TranscriptSource.CAPTIONS, error=CaptionFetchError("No subtitles available for this video"))
    fallback = FakeStrategy('ai-summary', TranscriptSource.AI_SUMMARY, content="Résumé détaillé.")

    result = TranscriptionOrchestrator([captions, fallback]).transcribe(VIDEO_ID)

    assert result.source == TranscriptSource.AI_SUMMARY
    assert result.content == "Résumé détaillé."
    assert captions.calls == [VIDEO_ID]
    assert fallback.calls == [VIDEO_ID]


def test_total_failure_surfaces_last_error():
    captions = FakeStrategy('captions', TranscriptSource.CAPTIONS, error=CaptionFetchError("No subtitles available for this video"))
    fallback = FakeStrategy('ai-summary', TranscriptSource.AI_SUMMARY, error=AISummaryError("Gemini returned empty response"))

    with pytest.raises(TranscriptionError) as exc_info:
        TranscriptionOrchestrator([captions, fallback]).transcribe(VIDEO_ID)

    assert str(exc_info.value) == "Failed to get transcript: Gemini returned empty response"
    assert isinstance(exc_info.value.__cause__, AISummaryError)


def test_unexpected_exception_in_strategy_does_not_stop_the_chain():
    broken = FakeStrategy('captions', TranscriptSource.CAPTIONS, error=RuntimeError("boom"))
    fallback = FakeStrategy('ai-summary', TranscriptSource.AI_SUMMARY, content="ok")

    result = TranscriptionOrchestrator([broken, fallback]).transcribe(VIDEO_ID)
    assert result.content == "ok"


def test_invalid_id_rejected_before_any_strategy():
    captions = FakeStrategy('captions', TranscriptSource.CAPTIONS, content="x")

    with pytest.raises(InvalidVideoIdError):
        TranscriptionOrchestrator([captions]).transcribe("dQw4w9WgXc")
    assert captions.calls == []


def test_orchestrator_requires_strategies():
    with pytest.raises(ValueError):
        TranscriptionOrchestrator([])


def test_from_settings_builds_captions_then_gemini(tmp_path):
    settings = TranscriptionSettings(work_dir=str(tmp_path), google_api_key='k')
    orchestrator = TranscriptionOrchestrator.from_settings(settings)

    assert [type(s) for s in orchestrator.strategies] == [CaptionFetcher, GeminiTranscriptService]
    assert [s.name for s in orchestrator.strategies] == ['captions', 'ai-summary']
