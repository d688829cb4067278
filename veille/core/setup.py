import os
import sqlite3
import logging

logger = logging.getLogger(__name__)


def setup_transcript_directory(config):
    """Assicura che la directory temporanea dei sottotitoli esista (solo proprietario)."""
    work_dir = config.get('TRANSCRIPT_WORK_DIR')
    if not work_dir:
        raise ValueError("TRANSCRIPT_WORK_DIR non trovato nella configurazione.")
    if not os.path.exists(work_dir):
        try:
            os.makedirs(work_dir, mode=0o700)
            logger.info(f"Directory temporanea trascrizioni '{work_dir}' creata.")
        except OSError as e:
            logger.error(f"Errore creando directory {work_dir}: {e}")
            raise


def init_db(config):
    """Inizializza il database SQLite usando il path dalla config."""
    db_path = config.get('DATABASE_FILE')
    if not db_path:
        raise ValueError("DATABASE_FILE non trovato nella configurazione.")

    db_dir = os.path.dirname(db_path)
    if db_dir and not os.path.exists(db_dir):
        try:
            os.makedirs(db_dir)
            logger.info(f"Directory database '{db_dir}' creata.")
        except OSError as e:
            logger.error(f"Errore creando la directory {db_dir}: {e}")
            raise

    conn = None
    try:
        conn = sqlite3.connect(db_path)
        cursor = conn.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")

        # --- Tabella channels ---
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS channels (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                thumbnail TEXT,
                added_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )''')

        # --- Tabella videos ---
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS videos (
                id TEXT PRIMARY KEY,
                channel_id TEXT REFERENCES channels(id),
                title TEXT NOT NULL,
                thumbnail TEXT,
                published_at TEXT,
                duration INTEGER,
                status TEXT DEFAULT 'new',
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )''')
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_videos_channel ON videos (channel_id)")

        # --- Tabella transcripts ---
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS transcripts (
                video_id TEXT PRIMARY KEY REFERENCES videos(id),
                content TEXT NOT NULL,
                source TEXT,
                segments_count INTEGER,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )''')

        # --- Tabella veille_items (idee/funzionalità scoperte) ---
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS veille_items (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                video_id TEXT REFERENCES videos(id),
                title TEXT NOT NULL,
                description TEXT,
                source TEXT,
                status TEXT DEFAULT 'discovered',
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                applied_at TIMESTAMP
            )''')

        conn.commit()
        logger.info(f"Database inizializzato/verificato: {db_path}")
    except sqlite3.Error as e:
        logger.error(f"Errore inizializzazione database {db_path}: {e}")
        if conn: conn.rollback()
        raise
    finally:
        if conn: conn.close()
