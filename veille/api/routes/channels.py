# FILE: veille/api/routes/channels.py
import logging
import sqlite3
from flask import Blueprint, request, jsonify, current_app
from flask_login import login_required
from googleapiclient.errors import HttpError

from veille.services.youtube.client import YouTubeClient

logger = logging.getLogger(__name__)
channels_bp = Blueprint('channels', __name__)


@channels_bp.route('', methods=['GET'])
@login_required
def list_channels():
    """Restituisce tutti i canali seguiti."""
    db_path = current_app.config.get('DATABASE_FILE')
    conn = None
    try:
        conn = sqlite3.connect(db_path)
        conn.row_factory = sqlite3.Row
        cursor = conn.cursor()
        cursor.execute("SELECT id, name, thumbnail, added_at FROM channels ORDER BY added_at DESC")
        channels = [dict(row) for row in cursor.fetchall()]
        return jsonify(channels), 200
    except sqlite3.Error as e:
        logger.error(f"Errore DB leggendo i canali: {e}")
        return jsonify({'success': False, 'error_code': 'DB_ERROR', 'message': 'Failed to fetch channels'}), 500
    finally:
        if conn: conn.close()


@channels_bp.route('', methods=['POST'])
@login_required
def add_channel():
    """
    Aggiunge un canale a partire da URL, handle (@nome) o ID.
    Recupera nome e miniatura dall'API YouTube.
    """
    db_path = current_app.config.get('DATABASE_FILE')

    if not request.is_json:
        return jsonify({'success': False, 'error_code': 'INVALID_CONTENT_TYPE', 'message': 'Request must be JSON.'}), 400

    channel_input = (request.get_json().get('input') or '').strip()
    if not channel_input:
        return jsonify({'success': False, 'error_code': 'VALIDATION_ERROR', 'message': 'Channel URL or ID required'}), 400

    conn = None
    try:
        yt_client = YouTubeClient(api_key=current_app.config.get('YOUTUBE_API_KEY'))
        channel_id = yt_client.resolve_channel_id(channel_input)
        if not channel_id:
            return jsonify({'success': False, 'error_code': 'CHANNEL_NOT_FOUND', 'message': 'Could not find channel'}), 404

        conn = sqlite3.connect(db_path)
        conn.row_factory = sqlite3.Row
        cursor = conn.cursor()
        cursor.execute("SELECT id, name, thumbnail, added_at FROM channels WHERE id = ?", (channel_id,))
        existing = cursor.fetchone()
        if existing:
            return jsonify({'success': False, 'error_code': 'ALREADY_EXISTS', 'message': 'Channel already added', 'channel': dict(existing)}), 409

        details = yt_client.get_channel_details(channel_id)
        if not details:
            return jsonify({'success': False, 'error_code': 'CHANNEL_NOT_FOUND', 'message': 'Could not fetch channel details'}), 404

        cursor.execute(
            "INSERT INTO channels (id, name, thumbnail) VALUES (?, ?, ?)",
            (details.channel_id, details.name, details.thumbnail)
        )
        conn.commit()
        cursor.execute("SELECT id, name, thumbnail, added_at FROM channels WHERE id = ?", (details.channel_id,))
        channel = dict(cursor.fetchone())
        logger.info(f"Canale '{details.name}' ({details.channel_id}) aggiunto.")
        return jsonify(channel), 201

    except (HttpError, ValueError) as e_yt:
        logger.error(f"Errore API YouTube per input '{channel_input}': {e_yt}")
        return jsonify({'success': False, 'error_code': 'YOUTUBE_API_ERROR', 'message': str(e_yt)}), 500
    except sqlite3.Error as e_sql:
        if conn: conn.rollback()
        logger.error(f"Errore DB aggiungendo il canale '{channel_input}': {e_sql}")
        return jsonify({'success': False, 'error_code': 'DB_ERROR', 'message': 'Failed to add channel'}), 500
    finally:
        if conn: conn.close()


@channels_bp.route('', methods=['DELETE'])
@login_required
def delete_channel():
    """Rimuove un canale insieme ai suoi video e alle loro trascrizioni."""
    channel_id = request.args.get('id')
    if not channel_id:
        return jsonify({'success': False, 'error_code': 'VALIDATION_ERROR', 'message': 'Channel ID required'}), 400

    db_path = current_app.config.get('DATABASE_FILE')
    conn = None
    try:
        conn = sqlite3.connect(db_path)
        cursor = conn.cursor()
        # Prima le trascrizioni e i riferimenti, poi i video e infine il canale
        cursor.execute("DELETE FROM transcripts WHERE video_id IN (SELECT id FROM videos WHERE channel_id = ?)", (channel_id,))
        cursor.execute("UPDATE veille_items SET video_id = NULL WHERE video_id IN (SELECT id FROM videos WHERE channel_id = ?)", (channel_id,))
        cursor.execute("DELETE FROM videos WHERE channel_id = ?", (channel_id,))
        videos_deleted = cursor.rowcount
        cursor.execute("DELETE FROM channels WHERE id = ?", (channel_id,))
        conn.commit()
        logger.info(f"Canale {channel_id} rimosso ({videos_deleted} video eliminati).")
        return jsonify({'success': True}), 200
    except sqlite3.Error as e_sql:
        if conn: conn.rollback()
        logger.error(f"Errore DB eliminando il canale {channel_id}: {e_sql}")
        return jsonify({'success': False, 'error_code': 'DB_ERROR', 'message': 'Failed to delete channel'}), 500
    finally:
        if conn: conn.close()


@channels_bp.route('/search', methods=['GET'])
@login_required
def search_channels():
    """Cerca canali YouTube per nome."""
    query = (request.args.get('q') or '').strip()
    if not query:
        return jsonify({'success': False, 'error_code': 'VALIDATION_ERROR', 'message': 'Query required'}), 400
    try:
        yt_client = YouTubeClient(api_key=current_app.config.get('YOUTUBE_API_KEY'))
        results = yt_client.search_channels(query)
        return jsonify([c.model_dump() for c in results]), 200
    except (HttpError, ValueError) as e_yt:
        logger.error(f"Errore ricerca canali per '{query}': {e_yt}")
        return jsonify({'success': False, 'error_code': 'YOUTUBE_API_ERROR', 'message': str(e_yt)}), 500
