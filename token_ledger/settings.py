"""Django settings for the token ledger service.


The project hosts a minimal balance ledger:
- Ledgers: mint + transfer with a conserved total supply
- Wallets: per-caller deposit / withdraw


Caller identity is taken from a request header; there is no auth layer.
"""

import os
from pathlib import Path


BASE_DIR = Path(__file__).resolve().parent.parent
SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-only-insecure-key")
DEBUG = os.getenv("DEBUG", "1") in ("1", "true", "True", "yes")
ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "*").split(",")
CSRF_TRUSTED_ORIGINS = os.getenv("CSRF_TRUSTED_ORIGINS", "").split(",") if os.getenv("CSRF_TRUSTED_ORIGINS") else []

def env_int(name, default):
    v = os.getenv(name)
    return int(v) if v else default

#######################
# Balance width in bits (unsigned). 128 matches the usual on-chain Balance type.
BALANCE_BITS = env_int("BALANCE_BITS", 128)

# Display only; the ledger itself works in integer base units.
TOKEN_DECIMALS = env_int("TOKEN_DECIMALS", 18)

# Header carrying the account id of whoever invokes an operation.
CALLER_HEADER = os.getenv("CALLER_HEADER", "X-Caller-Account")

# Dev-only fallback caller when the header is missing. Empty => reject.
DEFAULT_CALLER_ACCOUNT = os.getenv("DEFAULT_CALLER_ACCOUNT", "")
#######################


INSTALLED_APPS = [
	# local apps
	"core",
	"api",
]


MIDDLEWARE = [
	"django.middleware.security.SecurityMiddleware",
	"django.middleware.common.CommonMiddleware",
	"django.middleware.csrf.CsrfViewMiddleware",
]


ROOT_URLCONF = "token_ledger.urls"
TEMPLATES = []


WSGI_APPLICATION = "token_ledger.wsgi.application"


DB_ENGINE = os.getenv("DB_ENGINE", "sqlite")
if DB_ENGINE == "postgres":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.getenv("POSTGRES_DB", "token_ledger"),
            "USER": os.getenv("POSTGRES_USER", "token_ledger"),
            "PASSWORD": os.getenv("POSTGRES_PASSWORD", "token_ledger"),
            "HOST": os.getenv("POSTGRES_HOST", "localhost"),
            "PORT": os.getenv("POSTGRES_PORT", "5432"),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }


LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOGGING = {
	"version": 1,
	"disable_existing_loggers": False,
	"formatters": {
		"plain": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
	},
	"handlers": {
		"console": {"class": "logging.StreamHandler", "formatter": "plain"},
	},
	"loggers": {
		"core": {"handlers": ["console"], "level": LOG_LEVEL},
		"django.request": {"handlers": ["console"], "level": "ERROR", "propagate": False},
	},
}


LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True


DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"
