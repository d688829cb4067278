# FILE: veille/scheduler_jobs.py
import logging
import sqlite3

from veille.core.video_fetcher import _fetch_new_videos_core, _load_channels
from veille.utils import build_config_for_background_process


logger = logging.getLogger(__name__)


def check_channels_job():
    """
    Job eseguito periodicamente: recupera i nuovi video di tutti i canali seguiti.
    """
    logger.info("SCHEDULER JOB: Inizio esecuzione...")

    # L'app viene creata qui dentro per evitare import circolari con main
    from veille.main import create_app
    app = create_app()

    with app.app_context():
        db_path = app.config.get('DATABASE_FILE')
        if not db_path:
            logger.error("SCHEDULER JOB: Percorso del database non configurato. Interruzione.")
            return None

        try:
            channels = _load_channels(db_path)
        except sqlite3.Error as e:
            logger.error(f"SCHEDULER JOB: Errore DB caricando i canali: {e}")
            return None

        if not channels:
            logger.info("SCHEDULER JOB: Nessun canale da controllare.")
            return None

        try:
            result = _fetch_new_videos_core(channels, build_config_for_background_process())
        except Exception as e:
            logger.exception(f"SCHEDULER JOB: Errore imprevisto durante il recupero: {e}")
            return None

        for error in result.get('errors', []):
            logger.warning(f"SCHEDULER JOB: {error}")
        logger.info(f"SCHEDULER JOB: Completato. Nuovi video: {result.get('new_videos', 0)}.")
        return result
