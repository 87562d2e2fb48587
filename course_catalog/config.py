"""
Configuration settings for the application
"""
import os
from dotenv import load_dotenv
from .env_config import BACKEND_URL, CORS_ORIGINS, ENVIRONMENT, DEBUG

# Load environment variables
load_dotenv()

# Module-level configuration variables
SUPABASE_URL = os.getenv('SUPABASE_URL')
SUPABASE_KEY = os.getenv('SUPABASE_ANON_KEY')
SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key')

# Catalog behaviour
FILTER_DEBOUNCE_SECONDS = float(os.getenv('FILTER_DEBOUNCE_SECONDS', '0.3'))
PROFILE_FETCH_ATTEMPTS = int(os.getenv('PROFILE_FETCH_ATTEMPTS', '3'))
PROFILE_FETCH_DELAY = float(os.getenv('PROFILE_FETCH_DELAY', '0.5'))
CACHE_TIMEOUT = int(os.getenv('CACHE_TIMEOUT', '300'))

# Session contexts held in process memory
CONTEXT_IDLE_TIMEOUT = int(os.getenv('CONTEXT_IDLE_TIMEOUT', '1800'))
MAX_CONTEXTS = int(os.getenv('MAX_CONTEXTS', '1000'))


class Config:
    """
    Configuration class for the application.
    Contains all necessary settings and environment variables.
    """

    # Supabase
    SUPABASE_URL = SUPABASE_URL
    SUPABASE_KEY = SUPABASE_KEY

    # Flask
    SECRET_KEY = SECRET_KEY
    ENVIRONMENT = ENVIRONMENT
    DEBUG = DEBUG
    TESTING = False
    API_BASE_URL = BACKEND_URL
    CORS_ORIGINS = CORS_ORIGINS

    # flask-caching
    CACHE_TYPE = 'SimpleCache'
    CACHE_DEFAULT_TIMEOUT = CACHE_TIMEOUT

    # Catalog behaviour
    FILTER_DEBOUNCE_SECONDS = FILTER_DEBOUNCE_SECONDS
    PROFILE_FETCH_ATTEMPTS = PROFILE_FETCH_ATTEMPTS
    PROFILE_FETCH_DELAY = PROFILE_FETCH_DELAY

    # Session contexts
    CONTEXT_IDLE_TIMEOUT = CONTEXT_IDLE_TIMEOUT
    MAX_CONTEXTS = MAX_CONTEXTS

    @classmethod
    def validate(cls) -> None:
        """
        Validate that all required configuration values are set.
        Raises ValueError if any required value is missing.
        """
        if not cls.SUPABASE_URL:
            raise ValueError("SUPABASE_URL environment variable is not set")
        if not cls.SUPABASE_KEY:
            raise ValueError("SUPABASE_ANON_KEY environment variable is not set")
        if cls.ENVIRONMENT == 'production' and cls.SECRET_KEY == 'dev-secret-key':
            raise ValueError("SECRET_KEY environment variable is not set")
