import os
import sqlite3
import tempfile
import shutil
from veille.config import TestConfig
from veille.main import create_app, _scheduler_trigger_args


def test_index_page_loads(client): # client viene da conftest.py
    response = client.get('/')
    assert response.status_code == 200
    assert response.get_json()['app'] == 'youtube-veille'


def test_security_headers_on_every_response(client):
    response = client.get('/')
    assert response.headers['X-Content-Type-Options'] == 'nosniff'
    assert response.headers['X-Frame-Options'] == 'DENY'
    assert response.headers['Referrer-Policy'] == 'strict-origin-when-cross-origin'
    assert "frame-src https://www.youtube.com" in response.headers['Content-Security-Policy']

    # Anche le risposte di errore
    response = client.get('/api/channels')
    assert response.status_code == 401
    assert response.headers['X-Frame-Options'] == 'DENY'


def test_init_db_creates_database_file():
    """
    Verifica che la creazione dell'app chiami init_db, crei il file del database
    con tutte le tabelle e la directory temporanea delle trascrizioni.
    """
    test_dir = tempfile.mkdtemp()
    try:
        # 1. Configura
        test_config_instance = TestConfig()
        test_config_instance._TEST_BASE_DIR = test_dir

        # 2. Esegui
        app = create_app(test_config_instance)

        # 3. Verifica
        db_path = app.config['DATABASE_FILE']
        assert test_dir in db_path
        assert os.path.exists(db_path)
        assert os.path.isdir(app.config['TRANSCRIPT_WORK_DIR'])

        conn = sqlite3.connect(db_path)
        tables = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
        conn.close()
        assert {'channels', 'videos', 'transcripts', 'veille_items'} <= tables
        assert not hasattr(app, 'scheduler') # TESTING: scheduler non avviato
    finally:
        if os.path.exists(test_dir):
            shutil.rmtree(test_dir)


def test_scheduler_trigger_args():
    assert _scheduler_trigger_args({'SCHEDULER_INTERVAL_UNIT': 'hours', 'SCHEDULER_INTERVAL_VALUE': 6}) == {'minute': 0, 'hour': '*/6'}
    assert _scheduler_trigger_args({'SCHEDULER_INTERVAL_UNIT': 'minutes', 'SCHEDULER_INTERVAL_VALUE': 30}) == {'minute': '*/30'}
    assert _scheduler_trigger_args({'SCHEDULER_INTERVAL_UNIT': 'days', 'SCHEDULER_INTERVAL_VALUE': 1, 'SCHEDULER_RUN_HOUR': 4}) == {'hour': 4, 'minute': 0, 'day': '*/1'}


def test_scheduler_started_once_per_lock(tmp_path):
    """Solo il primo processo che crea il lock avvia lo scheduler."""
    from types import SimpleNamespace
    from unittest.mock import patch
    from veille.main import _start_scheduler

    config = {'DATABASE_FILE': str(tmp_path / 'veille.db'), 'SCHEDULER_INTERVAL_UNIT': 'hours', 'SCHEDULER_INTERVAL_VALUE': 6}
    first, second = SimpleNamespace(config=config), SimpleNamespace(config=config)

    with patch('veille.main.BackgroundScheduler') as MockScheduler, \
         patch('veille.main.SQLAlchemyJobStore'), \
         patch('veille.main.atexit.register'):
        _start_scheduler(first)
        _start_scheduler(second)

    assert os.path.exists(tmp_path / 'scheduler.lock')
    add_job_kwargs = MockScheduler.return_value.add_job.call_args.kwargs
    assert add_job_kwargs['id'] == 'check_channels_job'
    assert add_job_kwargs['hour'] == '*/6'
    assert MockScheduler.return_value.start.call_count == 1
