import os
import copy
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_flag(name, default):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./restaurant.db")
    SECRET_KEY = os.getenv("FLASK_SECRET_KEY", "default_secret_key")
    ADMIN_AUTH_ENABLED = _env_flag("ADMIN_AUTH_ENABLED", True)
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    PORT = int(os.getenv("PORT", 5000))
    TEMPLATES_AUTO_RELOAD = True


DEFAULT_SETTINGS = {
    "restaurant": {
        "restaurantName": "",
        "restaurantAddress": "",
        "restaurantPhone": "",
        "restaurantEmail": "",
    },
    "system": {
        "currency": "USD",
        "timezone": "UTC",
        "language": "en",
        "notifications": True,
        "autoBackup": False,
        "maintenanceMode": False,
    },
    "security": {
        "sessionTimeout": 30,
        "maxLoginAttempts": 5,
        "twoFactorAuth": False,
        "passwordExpiry": False,
    },
}


class SettingsStore:
    """In-process store for the admin settings pages.

    Values live for the lifetime of the app instance. Unknown keys are
    rejected so a typo in a form field name cannot create a new setting.
    """

    def __init__(self, initial=None):
        self._groups = copy.deepcopy(DEFAULT_SETTINGS)
        for group, values in (initial or {}).items():
            self.update(group, values)

    def get(self, group, key, default=None):
        return self._groups.get(group, {}).get(key, default)

    def update(self, group, values):
        if group not in self._groups:
            raise KeyError(f"Unknown settings group: {group}")
        current = self._groups[group]
        unknown = set(values) - set(current)
        if unknown:
            raise KeyError(f"Unknown {group} settings: {', '.join(sorted(unknown))}")
        current.update(values)
        return dict(current)

    def as_dict(self):
        return copy.deepcopy(self._groups)
