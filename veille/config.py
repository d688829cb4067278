import os
import tempfile
from datetime import timedelta
from dotenv import load_dotenv

app_dir = os.path.abspath(os.path.dirname(__file__))
basedir = os.path.dirname(app_dir)

dotenv_path = os.path.join(basedir, '.env')
if os.path.exists(dotenv_path):
    load_dotenv(dotenv_path)
    print(f"Caricate variabili d'ambiente da: {dotenv_path}") # Log conferma
else:
    print(f"Attenzione: File .env non trovato in {basedir}")


def _read_int(name, default, minimum=1):
    """Legge un intero da environ, ripiegando sul default se non valido."""
    raw_value = os.environ.get(name, str(default))
    try:
        value = int(raw_value)
        if value < minimum:
            raise ValueError(f"Il valore deve essere >= {minimum}.")
        return value
    except (ValueError, TypeError):
        print(f"ATTENZIONE: {name} ('{raw_value}') non valido. Uso '{default}'.")
        return default


class BaseConfig:
    """Configurazione di base da cui le altre ereditano."""

    # --- Segreti e Chiavi API (letti direttamente da environ) ---
    SECRET_KEY = os.environ.get('FLASK_SECRET_KEY')
    GOOGLE_API_KEY = os.environ.get('GOOGLE_API_KEY')
    YOUTUBE_API_KEY = os.environ.get('YOUTUBE_API_KEY')
    BASE_DIR = basedir

    DATABASE_FILE = os.path.join(BASE_DIR, os.environ.get('DATABASE_FILE', 'data/veille.db'))

    # --- Account unico dell'applicazione ---
    AUTH_USERNAME = os.environ.get('AUTH_USERNAME')
    AUTH_PASSWORD = os.environ.get('AUTH_PASSWORD')
    # Se presente ha la precedenza sulla password in chiaro (hash werkzeug)
    AUTH_PASSWORD_HASH = os.environ.get('AUTH_PASSWORD_HASH')
    REMEMBER_COOKIE_DURATION = timedelta(days=7)
    REMEMBER_COOKIE_HTTPONLY = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    # --- Trascrizione: sottotitoli via yt-dlp ---
    YTDLP_BINARY = os.environ.get('YTDLP_BINARY', 'yt-dlp')
    YTDLP_COOKIES_BROWSER = os.environ.get('YTDLP_COOKIES_BROWSER', 'chrome')
    # yt-dlp ha bisogno di deno come runtime JavaScript
    YTDLP_EXTRA_PATH = os.environ.get('YTDLP_EXTRA_PATH', os.path.join(os.path.expanduser('~'), '.deno', 'bin'))
    _languages_str = os.environ.get('CAPTION_LANGUAGES', 'fr,en')
    CAPTION_LANGUAGES = [lang.strip() for lang in _languages_str.split(',') if lang.strip()]
    if len(CAPTION_LANGUAGES) < 2:
        print(f"ATTENZIONE: CAPTION_LANGUAGES ('{_languages_str}') deve contenere due lingue. Uso 'fr,en'.")
        CAPTION_LANGUAGES = ['fr', 'en']
    CAPTION_TIMEOUT_SECONDS = _read_int('CAPTION_TIMEOUT_SECONDS', 120)
    CAPTION_MAX_OUTPUT_BYTES = _read_int('CAPTION_MAX_OUTPUT_BYTES', 10 * 1024 * 1024)
    TRANSCRIPT_WORK_DIR = os.environ.get('TRANSCRIPT_WORK_DIR', os.path.join(tempfile.gettempdir(), 'youtube-veille'))

    # --- Trascrizione: fallback Gemini ---
    GEMINI_TRANSCRIPT_MODEL = os.environ.get('GEMINI_TRANSCRIPT_MODEL', 'gemini-2.0-flash')

    # --- Scoperta nuovi video ---
    CHANNEL_FETCH_MAX_RESULTS = _read_int('CHANNEL_FETCH_MAX_RESULTS', 10)

    SCHEDULER_INTERVAL_UNIT = os.environ.get('SCHEDULER_INTERVAL_UNIT', 'hours').lower()
    SCHEDULER_INTERVAL_VALUE = _read_int('SCHEDULER_INTERVAL_VALUE', 6)
    SCHEDULER_RUN_HOUR_STR = os.environ.get('SCHEDULER_RUN_HOUR', '4')
    # Validazione per assicurarsi che sia un numero valido (0-23)
    try:
        SCHEDULER_RUN_HOUR = int(SCHEDULER_RUN_HOUR_STR)
        if not 0 <= SCHEDULER_RUN_HOUR <= 23:
            raise ValueError("L'ora deve essere tra 0 e 23.")
    except (ValueError, TypeError):
        print(f"ATTENZIONE: SCHEDULER_RUN_HOUR ('{SCHEDULER_RUN_HOUR_STR}') non valido. Uso '4'.")
        SCHEDULER_RUN_HOUR = 4
    # Validazione UNIT
    _valid_units = ['days', 'hours', 'minutes']
    if SCHEDULER_INTERVAL_UNIT not in _valid_units:
        print(f"ATTENZIONE: SCHEDULER_INTERVAL_UNIT ('{SCHEDULER_INTERVAL_UNIT}') non valido. Uso 'hours'. Validi: {_valid_units}")
        SCHEDULER_INTERVAL_UNIT = 'hours'


class DevelopmentConfig(BaseConfig):
    """Configurazione per lo sviluppo."""
    DEBUG = True


class ProductionConfig(BaseConfig):
    """Configurazione per la produzione."""
    DEBUG = False
    SESSION_COOKIE_SECURE = True
    REMEMBER_COOKIE_SECURE = True


class TestConfig(DevelopmentConfig):
    """Configurazione per i test."""
    TESTING = True
    SECRET_KEY = 'test_secret_key'
    GOOGLE_API_KEY = 'test_google_api_key_placeholder' # Non verranno fatte chiamate reali
    YOUTUBE_API_KEY = 'test_youtube_api_key_placeholder'
    AUTH_USERNAME = 'tester'
    AUTH_PASSWORD = 'password'
    AUTH_PASSWORD_HASH = None
    YTDLP_EXTRA_PATH = ''

    # _TEST_BASE_DIR verrà impostato dalla fixture di test
    _TEST_BASE_DIR = None
    _DATA_SUBDIR_IN_TEST_DIR = None

    def __setattr__(self, name, value):
        super().__setattr__(name, value)
        if name == '_TEST_BASE_DIR' and value is not None:
            self._DATA_SUBDIR_IN_TEST_DIR = os.path.join(value, "data_for_tests")
            os.makedirs(self._DATA_SUBDIR_IN_TEST_DIR, exist_ok=True)

    def _get_test_data_path(self, filename):
        if self._DATA_SUBDIR_IN_TEST_DIR is None:
            raise ValueError("_DATA_SUBDIR_IN_TEST_DIR non è stato impostato. Assicurati che _TEST_BASE_DIR sia impostato.")
        return os.path.join(self._DATA_SUBDIR_IN_TEST_DIR, filename)

    @property
    def DATABASE_FILE(self):
        return self._get_test_data_path('test_veille.db')

    @property
    def TRANSCRIPT_WORK_DIR(self):
        return self._get_test_data_path('test_transcripts_tmp')


# Dizionario per selezionare la configurazione
config_by_name = dict(
    development=DevelopmentConfig,
    production=ProductionConfig,
    test=TestConfig,
    default=DevelopmentConfig
)
