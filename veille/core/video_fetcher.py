# FILE: veille/core/video_fetcher.py

import logging
import sqlite3
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from veille.services.youtube.client import YouTubeClient


logger = logging.getLogger(__name__)


def _fetch_new_videos_core(channels: List[dict], core_config: dict, youtube_client: Optional[YouTubeClient] = None) -> dict:
    """
    Recupera gli ultimi video di ogni canale e inserisce quelli nuovi con stato 'new'.

    Le chiamate API ai canali avvengono in parallelo; gli inserimenti sono
    sequenziali su una sola connessione (SQLite non gradisce scritture concorrenti).
    Un canale che fallisce non blocca gli altri: l'errore finisce in 'errors'.
    """
    logger.info(f"[CORE Fetch] Avvio recupero nuovi video per {len(channels)} canali.")
    if not channels:
        return {"success": False, "new_videos": 0, "errors": ["No channels to fetch from"]}

    db_path = core_config.get('DATABASE_FILE')
    max_results = core_config.get('CHANNEL_FETCH_MAX_RESULTS', 10)
    if youtube_client is None:
        youtube_client = YouTubeClient(api_key=core_config.get('YOUTUBE_API_KEY'))

    def _fetch(channel):
        return youtube_client.get_channel_videos(channel['id'], max_results)

    with ThreadPoolExecutor(max_workers=min(4, len(channels))) as executor:
        futures = [(channel, executor.submit(_fetch, channel)) for channel in channels]

    total_new = 0
    errors = []
    conn = None
    try:
        conn = sqlite3.connect(db_path, timeout=10.0)
        cursor = conn.cursor()

        for channel, future in futures:
            try:
                videos = future.result()
            except Exception as e:
                logger.error(f"[CORE Fetch] Errore API per canale {channel['id']}: {e}")
                errors.append(f"{channel.get('name') or channel['id']}: {e}")
                continue

            try:
                channel_new = 0
                for video in videos:
                    cursor.execute("SELECT 1 FROM videos WHERE id = ?", (video.video_id,))
                    if cursor.fetchone():
                        continue
                    cursor.execute(
                        "INSERT INTO videos (id, channel_id, title, thumbnail, published_at, duration, status) VALUES (?, ?, ?, ?, ?, ?, 'new')",
                        (video.video_id, video.channel_id, video.title, video.thumbnail,
                         video.published_at.isoformat() if video.published_at else None, video.duration)
                    )
                    channel_new += 1
                conn.commit()
                total_new += channel_new
                logger.info(f"[CORE Fetch] Canale {channel['id']}: {channel_new} nuovi video su {len(videos)}.")
            except sqlite3.Error as e:
                conn.rollback()
                logger.error(f"[CORE Fetch] Errore DB inserendo i video del canale {channel['id']}: {e}")
                errors.append(f"{channel.get('name') or channel['id']}: {e}")
    finally:
        if conn: conn.close()

    logger.info(f"[CORE Fetch] Completato: {total_new} nuovi video, {len(errors)} errori.")
    return {"success": True, "new_videos": total_new, "errors": errors}


def _load_channels(db_path: str, channel_id: Optional[str] = None) -> List[dict]:
    """Carica i canali dal DB (tutti, o uno solo se channel_id è indicato)."""
    conn = None
    try:
        conn = sqlite3.connect(db_path)
        conn.row_factory = sqlite3.Row
        cursor = conn.cursor()
        if channel_id:
            cursor.execute("SELECT id, name FROM channels WHERE id = ?", (channel_id,))
        else:
            cursor.execute("SELECT id, name FROM channels")
        return [dict(row) for row in cursor.fetchall()]
    finally:
        if conn: conn.close()
