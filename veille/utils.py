import logging
from flask import current_app


logger = logging.getLogger(__name__)

MAX_LIST_LIMIT = 500


def parse_limit(raw_value, default=50, maximum=MAX_LIST_LIMIT):
    """Interpreta il parametro 'limit' di una query; valori non validi ricadono sul default."""
    if raw_value is None or raw_value == '':
        return default
    try:
        limit = int(raw_value)
    except (TypeError, ValueError):
        logger.warning(f"Parametro limit non valido '{raw_value}', uso {default}.")
        return default
    if limit < 1:
        return default
    return min(limit, maximum)


def parse_bool_flag(raw_value) -> bool:
    if raw_value is None:
        return False
    return str(raw_value).strip().lower() in ('1', 'true', 'yes', 'on')


def build_config_for_background_process() -> dict:
    """
    Copia la configurazione dell'app in un dict semplice, da passare ai processi
    in background che non devono dipendere da current_app.
    """
    return {**current_app.config}
