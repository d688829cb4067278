# FILE: veille/api/routes/videos.py
import logging
import sqlite3
from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required

from veille.api.models.video import EDITABLE_VIDEO_STATUSES
from veille.core.video_fetcher import _fetch_new_videos_core, _load_channels
from veille.utils import parse_limit

# --- Setup Logger e Blueprint ---
logger = logging.getLogger(__name__)
videos_bp = Blueprint('videos', __name__)

_VIDEO_SELECT = """
    SELECT v.*, c.name AS channel_name, c.thumbnail AS channel_thumbnail,
           t.video_id IS NOT NULL AS has_transcript
    FROM videos v
    LEFT JOIN channels c ON v.channel_id = c.id
    LEFT JOIN transcripts t ON v.id = t.video_id
"""


def _video_row_to_dict(row):
    video = dict(row)
    video['has_transcript'] = bool(video['has_transcript'])
    return video


@videos_bp.route('', methods=['GET'])
@login_required
def list_videos():
    """Elenca i video, filtrabili per canale e stato, dal più recente."""
    channel_id = request.args.get('channelId')
    status = request.args.get('status')
    limit = parse_limit(request.args.get('limit'), default=50)

    sql = _VIDEO_SELECT
    conditions, params = [], []
    if channel_id:
        conditions.append("v.channel_id = ?")
        params.append(channel_id)
    if status:
        conditions.append("v.status = ?")
        params.append(status)
    if conditions:
        sql += " WHERE " + " AND ".join(conditions)
    sql += " ORDER BY v.published_at DESC LIMIT ?"
    params.append(limit)

    db_path = current_app.config.get('DATABASE_FILE')
    conn = None
    try:
        conn = sqlite3.connect(db_path)
        conn.row_factory = sqlite3.Row
        cursor = conn.cursor()
        cursor.execute(sql, tuple(params))
        videos = [_video_row_to_dict(row) for row in cursor.fetchall()]
        return jsonify(videos), 200
    except sqlite3.Error as e:
        logger.error(f"Errore DB leggendo i video: {e}")
        return jsonify({'success': False, 'error_code': 'DB_ERROR', 'message': 'Failed to fetch videos'}), 500
    finally:
        if conn: conn.close()


@videos_bp.route('/<string:video_id>', methods=['GET'])
@login_required
def get_video(video_id):
    db_path = current_app.config.get('DATABASE_FILE')
    conn = None
    try:
        conn = sqlite3.connect(db_path)
        conn.row_factory = sqlite3.Row
        cursor = conn.cursor()
        cursor.execute(_VIDEO_SELECT + " WHERE v.id = ?", (video_id,))
        row = cursor.fetchone()
        if not row:
            return jsonify({'success': False, 'error_code': 'VIDEO_NOT_FOUND', 'message': 'Video not found'}), 404
        return jsonify(_video_row_to_dict(row)), 200
    except sqlite3.Error as e:
        logger.error(f"Errore DB leggendo il video {video_id}: {e}")
        return jsonify({'success': False, 'error_code': 'DB_ERROR', 'message': 'Failed to fetch video'}), 500
    finally:
        if conn: conn.close()


@videos_bp.route('', methods=['PATCH'])
@login_required
def update_video_status():
    """Aggiorna lo stato di un video (es. segnato come letto)."""
    if not request.is_json:
        return jsonify({'success': False, 'error_code': 'INVALID_CONTENT_TYPE', 'message': 'Request must be JSON.'}), 400

    data = request.get_json()
    video_id, status = data.get('id'), data.get('status')
    if not video_id or not status:
        return jsonify({'success': False, 'error_code': 'VALIDATION_ERROR', 'message': 'Video ID and status required'}), 400
    if status not in EDITABLE_VIDEO_STATUSES:
        return jsonify({'success': False, 'error_code': 'VALIDATION_ERROR', 'message': 'Invalid status'}), 400

    db_path = current_app.config.get('DATABASE_FILE')
    conn = None
    try:
        conn = sqlite3.connect(db_path)
        cursor = conn.cursor()
        cursor.execute("UPDATE videos SET status = ? WHERE id = ?", (status, video_id))
        conn.commit()
        logger.info(f"Video {video_id} aggiornato a stato '{status}' (righe: {cursor.rowcount}).")
        return jsonify({'success': True}), 200
    except sqlite3.Error as e:
        if conn: conn.rollback()
        logger.error(f"Errore DB aggiornando il video {video_id}: {e}")
        return jsonify({'success': False, 'error_code': 'DB_ERROR', 'message': 'Failed to update video'}), 500
    finally:
        if conn: conn.close()


@videos_bp.route('/fetch', methods=['POST'])
@login_required
def fetch_new_videos():
    """Recupera i nuovi video da tutti i canali, o da uno solo se indicato."""
    data = request.get_json(silent=True) or {}
    channel_id = data.get('channelId')

    try:
        channels = _load_channels(current_app.config.get('DATABASE_FILE'), channel_id)
    except sqlite3.Error as e:
        logger.error(f"Errore DB caricando i canali: {e}")
        return jsonify({'success': False, 'error_code': 'DB_ERROR', 'message': 'Failed to fetch videos'}), 500

    if not channels:
        return jsonify({'success': False, 'error_code': 'NO_CHANNELS', 'message': 'No channels to fetch from'}), 400

    try:
        result = _fetch_new_videos_core(channels, current_app.config)
    except Exception as e:
        logger.exception(f"Errore imprevisto durante il recupero dei nuovi video: {e}")
        return jsonify({'success': False, 'error_code': 'UNEXPECTED_ERROR', 'message': 'Failed to fetch videos'}), 500

    response = {'success': True, 'new_videos': result['new_videos']}
    if result['errors']:
        response['errors'] = result['errors']
    return jsonify(response), 200
