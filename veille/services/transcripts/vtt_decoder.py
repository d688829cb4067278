# FILE: veille/services/transcripts/vtt_decoder.py
import re
import logging

logger = logging.getLogger(__name__)

_HEADER_PREFIXES = ('WEBVTT', 'Kind:', 'Language:')
_TAG_RE = re.compile(r'<[^>]+>')
_WHITESPACE_RE = re.compile(r'\s+')
# Solo queste entità: le altre restano come sono
_ENTITIES = (
    ('&nbsp;', ' '),
    ('&amp;', '&'),
    ('&lt;', '<'),
    ('&gt;', '>'),
    ('&quot;', '"'),
)


def _clean_cue_line(line: str) -> str:
    cleaned = _TAG_RE.sub('', line)
    for entity, char in _ENTITIES:
        cleaned = cleaned.replace(entity, char)
    return cleaned.strip()


def parse_vtt(vtt_content: str) -> str:
    """
    Converte un file WebVTT in un unico blocco di testo semplice.

    Le righe di intestazione e i metadati vengono saltati, i tag inline rimossi,
    e una riga identica alla precedente viene scartata (i sottotitoli automatici
    ripetono la riga precedente per l'effetto di scorrimento).
    Un file senza cue restituisce una stringa vuota.
    """
    text_lines = []
    in_cue = False
    last_line = ''

    for line in vtt_content.splitlines():
        if line.startswith(_HEADER_PREFIXES):
            continue

        # La riga con il timestamp apre un cue
        if '-->' in line:
            in_cue = True
            continue

        if not line.strip():
            in_cue = False
            continue

        if in_cue:
            clean_line = _clean_cue_line(line)
            if clean_line and clean_line != last_line:
                text_lines.append(clean_line)
                last_line = clean_line

    text = _WHITESPACE_RE.sub(' ', ' '.join(text_lines)).strip()
    logger.debug(f"Decodificate {len(text_lines)} righe VTT ({len(text)} caratteri).")
    return text
