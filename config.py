import logging
import os

import yaml
from dotenv import load_dotenv

load_dotenv()

DEFAULT_CONFIG = {
    "service_name": "Applicant Submissions",
    "host": "0.0.0.0",
    "port": 4000,
    "database_url": "sqlite:///./submissions.db",
    "upload_dir": "./uploads",
    "max_upload_mb": 10,
    "allowed_extensions": [".pdf", ".jpg", ".jpeg", ".png", ".doc", ".docx"],
    "admin_username": "admin",
    "admin_password": "change-me",
    "session_cookie": "sessionId",
    "session_max_age_seconds": 300,
    "success_redirect": "/success.html",
    "download_requires_admin": False,
    "log_level": "INFO",
}

# env var -> (config key, type)
ENV_OVERRIDES = {
    "PORT": ("port", int),
    "DATABASE_URL": ("database_url", str),
    "UPLOAD_DIR": ("upload_dir", str),
    "ADMIN_USER": ("admin_username", str),
    "ADMIN_PASSWORD": ("admin_password", str),
    "LOG_LEVEL": ("log_level", str),
}


def load_config(path: str = "config.yaml") -> dict:
    config = dict(DEFAULT_CONFIG)
    try:
        with open(path, "r") as f:
            loaded = yaml.safe_load(f) or {}
        config.update(loaded)
    except Exception as e:
        logging.error(f"Config load failed: {e}")

    for var, (key, cast) in ENV_OVERRIDES.items():
        value = os.getenv(var)
        if value:
            config[key] = cast(value)
    return config
