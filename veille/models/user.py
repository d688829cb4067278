import hmac
from flask_login import UserMixin
from werkzeug.security import check_password_hash


class User(UserMixin):
    """Modello utente per Flask-Login. L'applicazione ha un solo account, definito in config."""

    def __init__(self, id, password=None, password_hash=None):
        self.id = id # Lo username fa da ID
        self.password = password
        self.password_hash = password_hash

    @classmethod
    def from_config(cls, config):
        """Restituisce l'utente configurato o None se mancano le credenziali."""
        username = config.get('AUTH_USERNAME')
        if not username:
            return None
        return cls(id=username, password=config.get('AUTH_PASSWORD'), password_hash=config.get('AUTH_PASSWORD_HASH'))

    def check_password(self, password):
        """Verifica la password: hash werkzeug se configurato, altrimenti confronto a tempo costante."""
        if not password:
            return False
        if self.password_hash:
            return check_password_hash(self.password_hash, password)
        if not self.password:
            return False # Nessuna password impostata
        return hmac.compare_digest(self.password.encode('utf-8'), password.encode('utf-8'))

    def get_id(self):
        return str(self.id)

    def __repr__(self):
        return f'<User {self.id}>'
