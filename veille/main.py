# --- Import Standard ---
import os
import sys
import logging
import atexit

# --- Import Flask e Correlati ---
from flask import Flask, jsonify, request, current_app
from flask_cors import CORS
from flask_login import LoginManager, login_required, login_user, logout_user, current_user

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.jobstores.sqlalchemy import SQLAlchemyJobStore
from werkzeug.middleware.proxy_fix import ProxyFix

from dotenv import load_dotenv

from .models.user import User
from .core.setup import init_db, setup_transcript_directory

# --- Caricamento Configurazione Centralizzata ---
load_dotenv() # Carica .env prima di importare config
from .config import config_by_name

config_name = os.getenv('FLASK_ENV', 'default')
AppConfig = config_by_name.get(config_name, config_by_name['default'])

# Impostiamo un livello base qui, verrà configurato meglio nell'app
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    'X-Content-Type-Options': 'nosniff',
    'X-Frame-Options': 'DENY',
    'X-XSS-Protection': '1; mode=block',
    'Referrer-Policy': 'strict-origin-when-cross-origin',
    'Content-Security-Policy': (
        "default-src 'self'; script-src 'self' 'unsafe-inline' 'unsafe-eval'; style-src 'self' 'unsafe-inline'; "
        "img-src 'self' https://i.ytimg.com https://yt3.ggpht.com data:; connect-src 'self'; "
        "frame-src https://www.youtube.com;"
    ),
}


def shutdown_scheduler(scheduler_instance):
    """Funzione per spegnere lo scheduler in modo pulito."""
    if scheduler_instance and scheduler_instance.running:
        logger.info("Spegnimento APScheduler...")
        try:
            scheduler_instance.shutdown()
            logger.info("APScheduler spento.")
        except Exception as e:
            logger.error(f"Errore durante lo spegnimento dello scheduler: {e}")


def _scheduler_trigger_args(config):
    """Traduce unità/valore dell'intervallo in argomenti per il trigger cron."""
    unit = config.get('SCHEDULER_INTERVAL_UNIT', 'hours')
    value = config.get('SCHEDULER_INTERVAL_VALUE', 6)
    hour = config.get('SCHEDULER_RUN_HOUR', 4)
    if unit == 'days':
        return {'hour': hour, 'minute': 0, 'day': f'*/{value}'}
    if unit == 'minutes':
        return {'minute': f'*/{value}'}
    return {'minute': 0, 'hour': f'*/{value}'}


def _start_scheduler(app):
    app.scheduler = BackgroundScheduler(
        jobstores={'default': SQLAlchemyJobStore(url=f"sqlite:///{app.config['DATABASE_FILE']}")},
        timezone="Europe/Paris"
    )

    job_id = 'check_channels_job'
    from .scheduler_jobs import check_channels_job
    app.scheduler.add_job(
        func=check_channels_job,
        trigger='cron',
        id=job_id,
        name='Controllo Periodico Nuovi Video',
        replace_existing=True,
        misfire_grace_time=300,
        **_scheduler_trigger_args(app.config)
    )
    logger.info(f"Worker PID {os.getpid()}: Job '{job_id}' definito/aggiornato nella configurazione dello scheduler.")

    # SOLO UN worker avvia effettivamente lo scheduler.
    lock_file_path = os.path.join(os.path.dirname(app.config['DATABASE_FILE']), 'scheduler.lock')
    try:
        with open(lock_file_path, 'x') as lock_file:
            lock_file.write(str(os.getpid()))
            logger.info(f"Worker PID {os.getpid()} ha acquisito il lock. AVVIO DELLO SCHEDULER.")
        app.scheduler.start()
        logger.info("APScheduler avviato con successo.")
        atexit.register(lambda: os.path.exists(lock_file_path) and os.remove(lock_file_path))
        atexit.register(lambda: shutdown_scheduler(app.scheduler))
    except FileExistsError:
        logger.info(f"Worker PID {os.getpid()}: Lock file già presente. Lo scheduler è già in esecuzione in un altro processo.")


# --- Factory Function per l'App Flask ---
def create_app(config_object=AppConfig):
    """Crea e configura l'istanza dell'app Flask."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    app.wsgi_app = ProxyFix(
        app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1, x_prefix=1
    )

    # --- Configura Logging ---
    is_debug_mode = app.config.get('FLASK_DEBUG', app.config.get('DEBUG', False))
    log_level = logging.DEBUG if is_debug_mode else logging.INFO
    logging.getLogger().setLevel(log_level)
    if not logging.getLogger().hasHandlers():
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        logging.getLogger().addHandler(handler)
    logger.info(f"Logging configurato a livello: {logging.getLevelName(log_level)}")

    # Validazioni Configurazioni Critiche
    if not app.config.get('SECRET_KEY'): logger.critical("SECRET_KEY mancante!"); sys.exit(1)
    if not app.config.get('DATABASE_FILE'): logger.critical("DATABASE_FILE mancante!"); sys.exit(1)
    if not app.config.get('AUTH_USERNAME'): logger.warning("AUTH_USERNAME mancante: login impossibile.")
    if not app.config.get('GOOGLE_API_KEY'): logger.warning("GOOGLE_API_KEY mancante: fallback Gemini disattivato.")
    if not app.config.get('YOUTUBE_API_KEY'): logger.warning("YOUTUBE_API_KEY mancante: gestione canali non disponibile.")

    try:
        init_db(app.config)
        setup_transcript_directory(app.config)
    except Exception as e:
        logger.critical(f"Fallimento inizializzazione DB/Directory: {e}", exc_info=True)
        sys.exit(1)

    # Inizializza Flask-Login
    login_manager = LoginManager()
    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id):
        user = User.from_config(current_app.config)
        if user and user.get_id() == user_id:
            return user
        return None

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'success': False, 'error_code': 'AUTH_REQUIRED', 'message': 'Login richiesto.'}), 401

    # --- Scheduler ---
    if not app.config.get('TESTING', False):
        _start_scheduler(app)
    else:
        logger.info("Modalità TESTING: APScheduler NON avviato.")

    CORS(app, supports_credentials=True, resources={r"/api/*": {"origins": "*"}})

    # Registra Blueprints
    from .api.routes.channels import channels_bp
    app.register_blueprint(channels_bp, url_prefix='/api/channels')
    from .api.routes.videos import videos_bp
    app.register_blueprint(videos_bp, url_prefix='/api/videos')
    from .api.routes.transcribe import transcribe_bp
    app.register_blueprint(transcribe_bp, url_prefix='/api/transcribe')
    from .api.routes.veille import veille_bp
    app.register_blueprint(veille_bp, url_prefix='/api/veille')
    logger.info("Blueprint channels/videos/transcribe/veille registrati.")

    @app.after_request
    def set_security_headers(response):
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        return response

    @app.route('/')
    def index():
        return jsonify({
            'success': True,
            'app': 'youtube-veille',
            'authenticated': current_user.is_authenticated,
        })

    @app.route('/login', methods=['POST'])
    def login():
        data = request.get_json(silent=True) or request.form
        username = data.get('username')
        password = data.get('password')

        if not username or not password:
            return jsonify({'success': False, 'error_code': 'VALIDATION_ERROR', 'message': 'Username e password sono richiesti.'}), 400

        user = User.from_config(current_app.config)
        if not user or user.get_id() != username or not user.check_password(password):
            logger.warning(f"Tentativo di login fallito per '{username}'.")
            return jsonify({'success': False, 'error_code': 'INVALID_CREDENTIALS', 'message': 'Invalid credentials'}), 401

        login_user(user, remember=True)
        logger.info(f"Utente {user.id} loggato con successo.")
        return jsonify({'success': True}), 200

    @app.route('/logout')
    @login_required
    def logout():
        """Effettua il logout dell'utente."""
        user_id = current_user.id
        logout_user()
        logger.info(f"Utente {user_id} sloggato.")
        return jsonify({'success': True}), 200

    return app
