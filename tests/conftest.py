import pytest
import os
import sqlite3
import tempfile
import shutil
import logging
from flask import url_for

# Importa dall'applicazione. pytest va eseguito dalla radice del progetto.
from veille.main import create_app, init_db
from veille.config import TestConfig

_TEST_DATA_DIR_CONFTEST = None
logger = logging.getLogger(__name__)


@pytest.fixture(scope='session')
def app():
    global _TEST_DATA_DIR_CONFTEST
    _TEST_DATA_DIR_CONFTEST = tempfile.mkdtemp(prefix="pytest_veille_session_")
    logger.info(f"CONFTEST: Test data directory created: {_TEST_DATA_DIR_CONFTEST}")

    test_config_instance = TestConfig()
    test_config_instance._TEST_BASE_DIR = _TEST_DATA_DIR_CONFTEST

    flask_app = create_app(test_config_instance)

    with flask_app.app_context():
        init_db(flask_app.config)
        logger.info(f"CONFTEST: Test database initialized at: {flask_app.config['DATABASE_FILE']}")

    yield flask_app

    logger.info("CONFTEST: Teardown for session-scoped app fixture.")
    if _TEST_DATA_DIR_CONFTEST and os.path.exists(_TEST_DATA_DIR_CONFTEST):
        try:
            shutil.rmtree(_TEST_DATA_DIR_CONFTEST)
            logger.info(f"CONFTEST: Test data directory removed: {_TEST_DATA_DIR_CONFTEST}")
        except OSError as e:
            logger.warning(f"CONFTEST: Error removing test data dir: {e}")
        _TEST_DATA_DIR_CONFTEST = None


@pytest.fixture(scope='function') # 'function' scope per isolare i cookie di sessione
def client(app):
    return app.test_client()


@pytest.fixture
def clean_db(app):
    """Svuota le tabelle prima del test: il DB è condiviso per tutta la sessione."""
    conn = sqlite3.connect(app.config['DATABASE_FILE'])
    cursor = conn.cursor()
    for table in ('veille_items', 'transcripts', 'videos', 'channels'):
        cursor.execute(f"DELETE FROM {table}")
    conn.commit()
    conn.close()
    return app.config['DATABASE_FILE']


@pytest.fixture
def logged_in_client(client, clean_db):
    response = client.post(url_for('login'), json={'username': 'tester', 'password': 'password'})
    assert response.status_code == 200
    return client



class DbSeeder:
    """Inserisce righe di prova direttamente nel DB SQLite dei test."""

    def __init__(self, db_path):
        self.db_path = db_path

    def _execute(self, sql, params):
        conn = sqlite3.connect(self.db_path)
        try:
            cursor = conn.execute(sql, params)
            conn.commit()
            return cursor.lastrowid
        finally:
            conn.close()

    def channel(self, channel_id='UCJSuTw2VDoX0CWejniSo5TA', name='Canale Test'):
        self._execute("INSERT INTO channels (id, name, thumbnail) VALUES (?, ?, ?)",
                      (channel_id, name, 'https://yt3.ggpht.com/x.jpg'))
        return channel_id

    def video(self, video_id, channel_id='UCJSuTw2VDoX0CWejniSo5TA', title='Video Test',
              published_at='2024-01-01T10:00:00+00:00', status='new'):
        self._execute(
            "INSERT INTO videos (id, channel_id, title, thumbnail, published_at, duration, status) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (video_id, channel_id, title, '', published_at, 300, status)
        )
        return video_id

    def transcript(self, video_id, content='Bonjour à tous', source='captions'):
        self._execute("INSERT INTO transcripts (video_id, content, source, segments_count) VALUES (?, ?, ?, ?)",
                      (video_id, content, source, 1))

    def veille_item(self, title, status='discovered', video_id=None):
        return self._execute("INSERT INTO veille_items (video_id, title, description, source, status) VALUES (?, ?, ?, ?, ?)",
                             (video_id, title, 'Descrizione', 'manual', status))

    def fetchone(self, sql, params=()):
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            row = conn.execute(sql, params).fetchone()
            return dict(row) if row else None
        finally:
            conn.close()


@pytest.fixture
def seed(clean_db):
    return DbSeeder(clean_db)
