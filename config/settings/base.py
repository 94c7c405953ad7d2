# config/settings/base.py
from pathlib import Path
import os
from dotenv import load_dotenv
from datetime import timedelta


BASE_DIR = Path(__file__).resolve().parent.parent.parent
load_dotenv(BASE_DIR / ".env")

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "unsafe-dev-key")
DEBUG = os.getenv("DJANGO_DEBUG", "0") == "1"
ALLOWED_HOSTS = ["*"]

INSTALLED_APPS = [
    # Django
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",

    # Third-party
    "corsheaders",
    "rest_framework",
    "rest_framework_simplejwt",
    "drf_spectacular",
    "django_filters",

    # Domain apps (modular monolith)
    "emr_core.common.apps.CommonConfig",
    "emr_core.tenants.apps.TenantsConfig",
    "emr_core.facilities.apps.FacilitiesConfig",
    "emr_core.iam.apps.IamConfig",
    "emr_core.audit.apps.AuditConfig",
    "emr_core.patients.apps.PatientsConfig",
    "emr_core.visits.apps.VisitsConfig",
    "emr_core.prescriptions.apps.PrescriptionsConfig",
    "emr_core.billing.apps.BillingConfig",
    "emr_core.reports.apps.ReportsConfig",
]

MIDDLEWARE = [
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]


ROOT_URLCONF = "config.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    }
]

WSGI_APPLICATION = "config.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": os.getenv("DB_NAME", "emr"),
        "USER": os.getenv("DB_USER", "emr"),
        "PASSWORD": os.getenv("DB_PASSWORD", "emr"),
        "HOST": os.getenv("DB_HOST", "127.0.0.1"),
        "PORT": os.getenv("DB_PORT", "5432"),
    }
}

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]

LANGUAGE_CODE = "en-us"
TIME_ZONE = os.getenv("TIME_ZONE", "UTC")
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "emr_core.iam.auth.CookieOrHeaderJWTAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": (
        "rest_framework.permissions.IsAuthenticated",
    ),
    "DEFAULT_SCHEMA_CLASS": "emr_core.common.openapi.EMRAutoSchema",

    # Standard error envelope
    "EXCEPTION_HANDLER": "emr_core.common.api.exceptions.api_exception_handler",

    # { data, meta: { page, limit, total, totalPages } }
    "DEFAULT_PAGINATION_CLASS": "emr_core.common.api.pagination.PageLimitPagination",
}

SPECTACULAR_SETTINGS = {
    "TITLE": "Clinic EMR API",
    "DESCRIPTION": "Patient registry, visits, prescriptions, billing and audit",
    "VERSION": "0.1.0",

    "COMPONENT_SPLIT_REQUEST": True,
    "SORT_OPERATIONS": True,
    "SORT_OPERATION_PARAMETERS": True,

    # Declared by CookieOrHeaderJWTAuthenticationScheme (emr_core/iam/openapi.py)
    "SECURITY": [
        {"BearerOrCookieJWT": []}
    ],
}

SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=15),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=7),
    "ROTATE_REFRESH_TOKENS": True,
    "BLACKLIST_AFTER_ROTATION": False,
    "UPDATE_LAST_LOGIN": True,

    # Cookie settings
    "AUTH_COOKIE": "emr_access",
    "AUTH_COOKIE_REFRESH": "emr_refresh",
    "AUTH_COOKIE_SECURE": False,   # True in prod (HTTPS)
    "AUTH_COOKIE_HTTP_ONLY": True,
    "AUTH_COOKIE_SAMESITE": "Lax",
}

# CORS (development defaults, tightened in prod.py)
CORS_ALLOW_ALL_ORIGINS = True
CORS_ALLOW_CREDENTIALS = True

# Domain tunables
EMR_PAGE_SIZE_DEFAULT = int(os.getenv("EMR_PAGE_SIZE_DEFAULT", "20"))
EMR_PAGE_SIZE_MAX = int(os.getenv("EMR_PAGE_SIZE_MAX", "100"))
EMR_PATIENT_RECENT_DAYS = int(os.getenv("EMR_PATIENT_RECENT_DAYS", "30"))
EMR_AUDIT_REDACTED_FIELDS = (
    "password",
    "token",
    "access",
    "refresh",
    "insurance_number",
)
# Only honour X-Forwarded-For when a reverse proxy we control sets it
EMR_TRUST_X_FORWARDED_FOR = os.getenv("EMR_TRUST_X_FORWARDED_FOR", "false").lower() in ("1", "true", "yes")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "kv": {
            "format": "%(asctime)s level=%(levelname)s logger=%(name)s msg=%(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "kv",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
        "emr_core": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
    },
}
