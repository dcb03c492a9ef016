import os
from pathlib import Path
import dj_database_url

# ========================================
# BASE CONFIGURATION
# ========================================
BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get(
    'SECRET_KEY',
    'django-insecure-dev-only-change-me'
)

DEBUG = os.environ.get('DEBUG', 'False') == 'True'
ALLOWED_HOSTS = os.environ.get(
    'ALLOWED_HOSTS',
    'localhost,127.0.0.1'
).split(',')


# ========================================
# APPLICATIONS
# ========================================
INSTALLED_APPS = [
    'daphne',
    'channels',
    'corsheaders',

    # Django Default Apps
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    # Project Apps
    'auction',
]

AUTH_USER_MODEL = 'auction.User'


# ========================================
# MIDDLEWARE
# ========================================
MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'whitenoise.middleware.WhiteNoiseMiddleware',
    'corsheaders.middleware.CorsMiddleware',

    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]


# ========================================
# URL / TEMPLATES
# ========================================
ROOT_URLCONF = 'auction_project.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

ASGI_APPLICATION = 'auction_project.asgi.application'


# ========================================
# DATABASE
# ========================================
DATA_DIR = BASE_DIR / 'data'
os.makedirs(DATA_DIR, exist_ok=True)

DATABASES = {
    'default': dj_database_url.config(
        default=f"sqlite:///{DATA_DIR / 'auction.db'}",
        conn_max_age=600,
        ssl_require=os.environ.get('DATABASE_SSL_REQUIRE', 'False') == 'True',
    )
}

if DATABASES['default']['ENGINE'] == 'django.db.backends.sqlite3':
    # writers take the lock at BEGIN, so a second sale waits and sees the first debit
    DATABASES['default']['OPTIONS'] = {
        'transaction_mode': 'IMMEDIATE',
        'timeout': 20,
    }
    # threads need a shared file, not a private in-memory database
    DATABASES['default']['TEST'] = {'NAME': str(DATA_DIR / 'test_auction.db')}


# ========================================
# REDIS / CHANNELS
# ========================================
REDIS_URL = os.environ.get('REDIS_URL')

if REDIS_URL:
    CHANNEL_LAYERS = {
        'default': {
            'BACKEND': 'channels_redis.core.RedisChannelLayer',
            'CONFIG': {"hosts": [REDIS_URL]},
        },
    }
else:
    # single process only; projector tabs must hit the same worker
    CHANNEL_LAYERS = {
        'default': {'BACKEND': 'channels.layers.InMemoryChannelLayer'},
    }


# ========================================
# AUCTION
# ========================================
AUCTION = {
    'COUNTDOWN': int(os.environ.get('AUCTION_COUNTDOWN', 60)),
    'TICK_SECONDS': float(os.environ.get('AUCTION_TICK_SECONDS', 1.0)),
    'MIN_INCREMENT': int(os.environ.get('AUCTION_MIN_INCREMENT', 100000)),
    'QUICK_INCREMENTS': [
        int(value) for value in os.environ.get(
            'AUCTION_QUICK_INCREMENTS', '200000,500000,1000000'
        ).split(',')
    ],
    'CUSTOM_INCREMENT_MAX': int(os.environ.get('AUCTION_CUSTOM_INCREMENT_MAX', 5000000)),
    'INCREMENT_STEP': int(os.environ.get('AUCTION_INCREMENT_STEP', 100000)),
    'SYNC_GROUP': os.environ.get('AUCTION_SYNC_GROUP', 'auction_sync'),
}


# ========================================
# PASSWORD VALIDATION
# ========================================
AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]


# ========================================
# INTERNATIONALIZATION / TIMEZONE
# ========================================
LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'Asia/Kolkata'
USE_I18N = True
USE_TZ = True


# ========================================
# STATIC & MEDIA FILES
# ========================================
STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

# Uploaded player images
MEDIA_URL = '/uploads/'
MEDIA_ROOT = BASE_DIR / 'uploads'

STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "whitenoise.storage.CompressedStaticFilesStorage"},
}


# ========================================
# CORS & CSRF
# ========================================
CORS_ALLOWED_ORIGINS = os.environ.get(
    'CORS_ORIGINS',
    "http://localhost:5173",
).split(',')

CORS_ALLOW_CREDENTIALS = True
CSRF_TRUSTED_ORIGINS = CORS_ALLOWED_ORIGINS.copy()


# ========================================
# SECURITY SETTINGS
# ========================================
if not DEBUG:
    SECURE_CONTENT_TYPE_NOSNIFF = True
    X_FRAME_OPTIONS = 'DENY'
    SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')


# ========================================
# LOGGING
# ========================================
LOG_DIR = BASE_DIR / 'logs'
os.makedirs(LOG_DIR, exist_ok=True)

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {module} {process:d} {thread:d} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {'class': 'logging.StreamHandler', 'formatter': 'verbose'},
        'file': {
            'class': 'logging.handlers.RotatingFileHandler',
            'filename': LOG_DIR / 'auction.log',
            'maxBytes': 15 * 1024 * 1024,
            'backupCount': 10,
            'formatter': 'verbose',
        },
        'error_file': {
            'class': 'logging.handlers.RotatingFileHandler',
            'filename': LOG_DIR / 'errors.log',
            'maxBytes': 15 * 1024 * 1024,
            'backupCount': 10,
            'formatter': 'verbose',
            'level': 'ERROR',
        },
    },
    'loggers': {
        'django': {'handlers': ['console', 'file'], 'level': 'INFO', 'propagate': False},
        'auction': {'handlers': ['console', 'file', 'error_file'], 'level': 'DEBUG' if DEBUG else 'INFO', 'propagate': False},
    },
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'
