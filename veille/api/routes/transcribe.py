# FILE: veille/api/routes/transcribe.py
import logging
import sqlite3
from flask import Blueprint, request, jsonify, current_app
from flask_login import login_required

from veille.services.transcripts.orchestrator import TranscriptionOrchestrator
from veille.services.transcripts.schema import (
    TranscriptError, TranscriptionSettings, is_valid_video_id,
)

logger = logging.getLogger(__name__)
transcribe_bp = Blueprint('transcribe', __name__)


def _transcript_row_to_dict(row):
    return {
        'video_id': row['video_id'],
        'content': row['content'],
        'source': row['source'],
        'segments_count': row['segments_count'],
        'created_at': row['created_at'],
    }


def _set_video_status(db_path, video_id, status):
    conn = None
    try:
        conn = sqlite3.connect(db_path)
        conn.execute("UPDATE videos SET status = ? WHERE id = ?", (status, video_id))
        conn.commit()
    except sqlite3.Error as e:
        logger.error(f"[{video_id}] Impossibile impostare lo stato '{status}': {e}")
    finally:
        if conn: conn.close()


@transcribe_bp.route('', methods=['POST'])
@login_required
def transcribe():
    """
    Trascrive un video. Se esiste già una trascrizione la restituisce (cached),
    altrimenti prova sottotitoli yt-dlp e poi il fallback Gemini.
    In caso di errore il video torna allo stato 'new'.
    """
    data = request.get_json(silent=True) or {}
    video_id = data.get('videoId')
    if not video_id:
        return jsonify({'success': False, 'error_code': 'VALIDATION_ERROR', 'message': 'Video ID required'}), 400
    if not is_valid_video_id(video_id):
        return jsonify({'success': False, 'error_code': 'INVALID_VIDEO_ID', 'message': f'Invalid video ID format: {video_id}'}), 400

    db_path = current_app.config.get('DATABASE_FILE')
    conn = None
    try:
        conn = sqlite3.connect(db_path)
        conn.row_factory = sqlite3.Row
        cursor = conn.cursor()

        cursor.execute("SELECT * FROM transcripts WHERE video_id = ?", (video_id,))
        existing = cursor.fetchone()
        if existing:
            logger.info(f"[{video_id}] Trascrizione già presente, restituisco la copia salvata.")
            return jsonify({'success': True, 'cached': True, 'transcript': _transcript_row_to_dict(existing)}), 200

        cursor.execute("SELECT id, status FROM videos WHERE id = ?", (video_id,))
        video = cursor.fetchone()
        if not video:
            return jsonify({'success': False, 'error_code': 'VIDEO_NOT_FOUND', 'message': 'Video not found'}), 404

        # Un solo processo alla volta per lo stesso video
        cursor.execute("UPDATE videos SET status = 'transcribing' WHERE id = ? AND status != 'transcribing'", (video_id,))
        conn.commit()
        if cursor.rowcount == 0:
            return jsonify({'success': False, 'error_code': 'ALREADY_TRANSCRIBING', 'message': 'Transcription already in progress'}), 409
    except sqlite3.Error as e:
        if conn: conn.rollback()
        logger.error(f"[{video_id}] Errore DB preparando la trascrizione: {e}")
        return jsonify({'success': False, 'error_code': 'DB_ERROR', 'message': 'Transcription failed'}), 500
    finally:
        if conn: conn.close()

    try:
        settings = TranscriptionSettings.from_config(current_app.config)
        result = TranscriptionOrchestrator.from_settings(settings).transcribe(video_id)
    except TranscriptError as e:
        logger.error(f"[{video_id}] Trascrizione fallita: {e}")
        _set_video_status(db_path, video_id, 'new')
        return jsonify({'success': False, 'error_code': 'TRANSCRIPTION_FAILED', 'message': str(e)}), 500
    except Exception as e:
        logger.exception(f"[{video_id}] Errore imprevisto durante la trascrizione: {e}")
        _set_video_status(db_path, video_id, 'new')
        return jsonify({'success': False, 'error_code': 'UNEXPECTED_ERROR', 'message': 'Transcription failed'}), 500

    conn = None
    try:
        conn = sqlite3.connect(db_path)
        conn.row_factory = sqlite3.Row
        cursor = conn.cursor()
        cursor.execute(
            "INSERT OR REPLACE INTO transcripts (video_id, content, source, segments_count) VALUES (?, ?, ?, ?)",
            (video_id, result.content, result.source.value, result.segment_count)
        )
        cursor.execute("UPDATE videos SET status = 'transcribed' WHERE id = ?", (video_id,))
        conn.commit()
        cursor.execute("SELECT * FROM transcripts WHERE video_id = ?", (video_id,))
        saved = cursor.fetchone()
        logger.info(f"[{video_id}] Trascrizione salvata (fonte: {result.source.value}, segmenti: {result.segment_count}).")
        return jsonify({'success': True, 'cached': False, 'transcript': _transcript_row_to_dict(saved)}), 200
    except sqlite3.Error as e:
        if conn: conn.rollback()
        logger.error(f"[{video_id}] Errore DB salvando la trascrizione: {e}")
        _set_video_status(db_path, video_id, 'new')
        return jsonify({'success': False, 'error_code': 'DB_ERROR', 'message': 'Transcription failed'}), 500
    finally:
        if conn: conn.close()


@transcribe_bp.route('', methods=['GET'])
@login_required
def get_transcript():
    video_id = request.args.get('videoId')
    if not video_id:
        return jsonify({'success': False, 'error_code': 'VALIDATION_ERROR', 'message': 'Video ID required'}), 400

    db_path = current_app.config.get('DATABASE_FILE')
    conn = None
    try:
        conn = sqlite3.connect(db_path)
        conn.row_factory = sqlite3.Row
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM transcripts WHERE video_id = ?", (video_id,))
        row = cursor.fetchone()
        if not row:
            return jsonify({'success': False, 'error_code': 'TRANSCRIPT_NOT_FOUND', 'message': 'Transcript not found'}), 404
        return jsonify(_transcript_row_to_dict(row)), 200
    except sqlite3.Error as e:
        logger.error(f"[{video_id}] Errore DB leggendo la trascrizione: {e}")
        return jsonify({'success': False, 'error_code': 'DB_ERROR', 'message': 'Failed to fetch transcript'}), 500
    finally:
        if conn: conn.close()
