# FILE: veille/api/routes/veille.py
import logging
import sqlite3
from flask import Blueprint, request, jsonify, current_app
from flask_login import login_required

from veille.utils import parse_bool_flag

logger = logging.getLogger(__name__)
veille_bp = Blueprint('veille', __name__)

VEILLE_STATUSES = ['discovered', 'testing', 'applied', 'rejected']


@veille_bp.route('', methods=['GET'])
@login_required
def list_items():
    """Elenca le voci di veille, dalla più recente; filtri: status, excludeApplied."""
    status = request.args.get('status')
    exclude_applied = parse_bool_flag(request.args.get('excludeApplied'))

    sql = """
        SELECT vi.*, v.title AS video_title
        FROM veille_items vi
        LEFT JOIN videos v ON vi.video_id = v.id
    """
    conditions, params = [], []
    if status:
        conditions.append("vi.status = ?")
        params.append(status)
    if exclude_applied:
        # Le voci chiuse (applicate o scartate) escono dalla lista di lavoro
        conditions.append("vi.status NOT IN ('applied', 'rejected')")
    if conditions:
        sql += " WHERE " + " AND ".join(conditions)
    sql += " ORDER BY vi.created_at DESC, vi.id DESC"

    db_path = current_app.config.get('DATABASE_FILE')
    conn = None
    try:
        conn = sqlite3.connect(db_path)
        conn.row_factory = sqlite3.Row
        cursor = conn.cursor()
        cursor.execute(sql, tuple(params))
        return jsonify([dict(row) for row in cursor.fetchall()]), 200
    except sqlite3.Error as e:
        logger.error(f"Errore DB leggendo le voci di veille: {e}")
        return jsonify({'success': False, 'error_code': 'DB_ERROR', 'message': 'Failed to fetch veille items'}), 500
    finally:
        if conn: conn.close()


@veille_bp.route('', methods=['POST'])
@login_required
def add_item():
    """Aggiunge una voce; se esiste già una voce con lo stesso titolo la restituisce senza duplicarla."""
    if not request.is_json:
        return jsonify({'success': False, 'error_code': 'INVALID_CONTENT_TYPE', 'message': 'Request must be JSON.'}), 400

    data = request.get_json()
    title = (data.get('title') or '').strip()
    if not title:
        return jsonify({'success': False, 'error_code': 'VALIDATION_ERROR', 'message': 'Title required'}), 400

    db_path = current_app.config.get('DATABASE_FILE')
    conn = None
    try:
        conn = sqlite3.connect(db_path)
        conn.row_factory = sqlite3.Row
        cursor = conn.cursor()

        cursor.execute("SELECT * FROM veille_items WHERE title = ?", (title,))
        existing = cursor.fetchone()
        if existing:
            logger.info(f"Voce di veille '{title}' già presente (id {existing['id']}).")
            return jsonify({'success': False, 'error_code': 'ALREADY_EXISTS', 'message': 'Item already exists', 'item': dict(existing)}), 200

        cursor.execute(
            "INSERT INTO veille_items (video_id, title, description, source) VALUES (?, ?, ?, ?)",
            (data.get('videoId'), title, data.get('description'), data.get('source') or 'manual')
        )
        conn.commit()
        cursor.execute("SELECT * FROM veille_items WHERE id = ?", (cursor.lastrowid,))
        item = dict(cursor.fetchone())
        logger.info(f"Voce di veille '{title}' aggiunta (id {item['id']}).")
        return jsonify({'success': True, 'item': item}), 201
    except sqlite3.Error as e:
        if conn: conn.rollback()
        logger.error(f"Errore DB aggiungendo la voce di veille '{title}': {e}")
        return jsonify({'success': False, 'error_code': 'DB_ERROR', 'message': 'Failed to add veille item'}), 500
    finally:
        if conn: conn.close()


@veille_bp.route('', methods=['PATCH'])
@login_required
def update_item_status():
    if not request.is_json:
        return jsonify({'success': False, 'error_code': 'INVALID_CONTENT_TYPE', 'message': 'Request must be JSON.'}), 400

    data = request.get_json()
    item_id, status = data.get('id'), data.get('status')
    if not item_id or not status:
        return jsonify({'success': False, 'error_code': 'VALIDATION_ERROR', 'message': 'ID and status required'}), 400
    if status not in VEILLE_STATUSES:
        return jsonify({'success': False, 'error_code': 'VALIDATION_ERROR', 'message': 'Invalid status'}), 400

    db_path = current_app.config.get('DATABASE_FILE')
    conn = None
    try:
        conn = sqlite3.connect(db_path)
        cursor = conn.cursor()
        if status == 'applied':
            cursor.execute("UPDATE veille_items SET status = ?, applied_at = CURRENT_TIMESTAMP WHERE id = ?", (status, item_id))
        else:
            # applied_at non viene mai azzerato
            cursor.execute("UPDATE veille_items SET status = ? WHERE id = ?", (status, item_id))
        if cursor.rowcount == 0:
            return jsonify({'success': False, 'error_code': 'ITEM_NOT_FOUND', 'message': 'Veille item not found'}), 404
        conn.commit()
        logger.info(f"Voce di veille {item_id} aggiornata a '{status}'.")
        return jsonify({'success': True}), 200
    except sqlite3.Error as e:
        if conn: conn.rollback()
        logger.error(f"Errore DB aggiornando la voce di veille {item_id}: {e}")
        return jsonify({'success': False, 'error_code': 'DB_ERROR', 'message': 'Failed to update veille item'}), 500
    finally:
        if conn: conn.close()
