# FILE: veille/services/transcripts/caption_fetcher.py
import os
import logging
import subprocess
import threading
from typing import List, Optional

from veille.services.transcripts.base import TranscriptStrategy
from veille.services.transcripts.schema import (
    CaptionFetchError, TranscriptResult, TranscriptSource, TranscriptionSettings,
    validate_video_id, video_url,
)
from veille.services.transcripts.vtt_decoder import parse_vtt

logger = logging.getLogger(__name__)

SUBTITLE_EXTENSION = '.vtt'
OUTPUT_CHUNK_SIZE = 64 * 1024
# I nipoti di yt-dlp possono tenere aperta la pipe dopo la sua uscita
READER_JOIN_TIMEOUT_SECONDS = 5


class CaptionFetcher(TranscriptStrategy):
    """
    Recupera i sottotitoli generati automaticamente tramite yt-dlp
    (processo esterno) e li converte in testo semplice.
    """
    name = "captions"
    source = TranscriptSource.CAPTIONS

    def __init__(self, settings: TranscriptionSettings):
        if not settings.work_dir:
            raise ValueError("work_dir è richiesto per CaptionFetcher.")
        self.settings = settings
        self.work_dir = settings.work_dir

    def fetch(self, video_id: str) -> TranscriptResult:
        # La validazione avviene PRIMA di qualsiasi I/O: l'ID finisce negli argomenti del processo
        validate_video_id(video_id)
        logger.info(f"[Captions] Avvio recupero sottotitoli per video ID: {video_id}")

        try:
            self._ensure_work_dir()
            self._run_downloader(video_id)

            subtitle_file = self._find_subtitle_file(video_id)
            if not subtitle_file:
                raise CaptionFetchError("No subtitles available for this video")

            with open(os.path.join(self.work_dir, subtitle_file), 'r', encoding='utf-8', errors='replace') as f:
                content = parse_vtt(f.read())

            if not content:
                raise CaptionFetchError(f"Subtitle file '{subtitle_file}' contains no text")

            logger.info(f"[Captions] Sottotitoli recuperati per {video_id} da '{subtitle_file}' ({len(content)} caratteri).")
            return TranscriptResult.from_text(content, TranscriptSource.CAPTIONS)

        except CaptionFetchError:
            raise
        except OSError as e:
            raise CaptionFetchError(f"Filesystem error: {e}") from e
        finally:
            self._cleanup(video_id)

    # --- Passi interni ---

    def _ensure_work_dir(self):
        os.makedirs(self.work_dir, mode=0o700, exist_ok=True)
        # makedirs non cambia i permessi di una directory già esistente
        os.chmod(self.work_dir, 0o700)

    def build_command(self, video_id: str) -> List[str]:
        """Vettore di argomenti per yt-dlp: mai una stringa passata alla shell."""
        output_prefix = os.path.join(self.work_dir, video_id)
        command = [self.settings.ytdlp_binary, '--no-colors']
        if self.settings.cookies_browser:
            command += ['--cookies-from-browser', self.settings.cookies_browser]
        command += [
            '--write-auto-sub',
            '--skip-download',
            '--sub-format', 'vtt',
            '--sub-lang', ','.join(self.settings.languages[:2]),
            '-o', output_prefix,
            video_url(video_id),
        ]
        return command

    def _build_env(self) -> dict:
        env = dict(os.environ)
        if self.settings.extra_path:
            env['PATH'] = os.pathsep.join([self.settings.extra_path, env.get('PATH', '')])
        return env

    def _run_downloader(self, video_id: str):
        """
        Esegue yt-dlp leggendo l'output a blocchi: oltre max_output_bytes
        il processo viene terminato subito, senza attendere la fine.
        """
        command = self.build_command(video_id)
        logger.debug(f"[Captions] Esecuzione: {command}")
        try:
            process = subprocess.Popen(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                env=self._build_env(),
            )
        except FileNotFoundError as e:
            raise CaptionFetchError(f"yt-dlp executable not found: {self.settings.ytdlp_binary}") from e

        output = bytearray()
        overflow = threading.Event()

        def _drain():
            while True:
                try:
                    chunk = process.stdout.read1(OUTPUT_CHUNK_SIZE)
                except (OSError, ValueError):
                    # Pipe chiusa dal thread principale
                    return
                if not chunk:
                    return
                if len(output) + len(chunk) > self.settings.max_output_bytes:
                    overflow.set()
                    process.kill()
                    return
                output.extend(chunk)

        reader = threading.Thread(target=_drain, name=f"yt-dlp-output-{video_id}", daemon=True)
        reader.start()
        try:
            returncode = process.wait(timeout=self.settings.timeout_seconds)
        except subprocess.TimeoutExpired as e:
            process.kill()
            process.wait()
            raise CaptionFetchError(f"yt-dlp timed out after {self.settings.timeout_seconds}s") from e
        finally:
            reader.join(timeout=READER_JOIN_TIMEOUT_SECONDS)
            process.stdout.close()

        if overflow.is_set():
            raise CaptionFetchError(f"yt-dlp output exceeded {self.settings.max_output_bytes} bytes")

        if returncode != 0:
            # Successo parziale frequente (es. una lingua scaricata, l'altra no): si prosegue
            output_tail = bytes(output).decode('utf-8', errors='replace').strip()[-500:]
            logger.warning(f"[Captions] yt-dlp terminato con codice {returncode} per {video_id}. "
                           f"Controllo comunque i file prodotti. output: {output_tail}")

    def _matching_files(self, video_id: str) -> List[str]:
        try:
            return sorted(f for f in os.listdir(self.work_dir) if f.startswith(video_id))
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.warning(f"[Captions] Impossibile leggere la directory {self.work_dir}: {e}")
            return []

    def _find_subtitle_file(self, video_id: str) -> Optional[str]:
        subtitle_files = [f for f in self._matching_files(video_id) if f.endswith(SUBTITLE_EXTENSION)]
        for lang_code in self.settings.languages:
            for f in subtitle_files:
                if f'.{lang_code}' in f[len(video_id):]:
                    return f
        # Ultima spiaggia: qualsiasi sottotitolo del video
        return subtitle_files[0] if subtitle_files else None

    def _cleanup(self, video_id: str):
        """Rimuove tutti i file del video. Gli errori vengono solo loggati."""
        for f in self._matching_files(video_id):
            path = os.path.join(self.work_dir, f)
            try:
                os.remove(path)
                logger.debug(f"[Captions] File temporaneo rimosso: {path}")
            except OSError as e:
                logger.warning(f"[Captions] Impossibile rimuovere il file temporaneo {path}: {e}")
