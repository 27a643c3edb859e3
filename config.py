import os
from datetime import timedelta
from dotenv import load_dotenv

# Load environment variables from .env file
BASE_DIR = os.path.abspath(os.path.dirname(__file__))
dotenv_path = os.path.join(BASE_DIR, '.env')

# Load the .env file from that specific path
load_dotenv(dotenv_path=dotenv_path)


class Config:
    """Base configuration class."""

    # Get secret key and database URL from environment variables
    SECRET_KEY = os.getenv('SECRET_KEY') or 'dev-fallback-secret-key-change-in-prod'
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL') or \
        'sqlite:///' + os.path.join(BASE_DIR, 'effiplat.db')

    # Flask-SQLAlchemy settings
    SQLALCHEMY_ENGINE_OPTIONS = {'pool_recycle': 280}
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Session settings
    PERMANENT_SESSION_LIFETIME = timedelta(days=1)

    # Flask-Login settings
    REMEMBER_COOKIE_DURATION = timedelta(days=7)
    REMEMBER_COOKIE_HTTPONLY = True
    SESSION_PROTECTION = 'basic'

    # Flask-Caching settings
    CACHE_TYPE = os.getenv('CACHE_TYPE', 'SimpleCache')
    CACHE_DEFAULT_TIMEOUT = int(os.getenv('CACHE_DEFAULT_TIMEOUT', 300))

    # Relationship synchronization
    SYNC_TIMEOUT_SECONDS = float(os.getenv('SYNC_TIMEOUT_SECONDS', 30))
    VALIDATION_CHUNK_SIZE = int(os.getenv('VALIDATION_CHUNK_SIZE', 500))
    AUDIT_ASYNC = os.getenv('AUDIT_ASYNC', 'true').lower() in ['true', 'on', '1']

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
