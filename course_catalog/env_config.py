"""Environment-based configuration settings"""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Environment settings
ENVIRONMENT = os.getenv('ENVIRONMENT', 'development')

# Backend URL configuration
BACKEND_URLS = {
    'development': 'http://localhost:5000',
    'testing': 'http://localhost:5000',
    'production': os.getenv('PRODUCTION_BACKEND_URL', 'http://localhost:5000'),
}

# Browser origins allowed to call the API
FRONTEND_ORIGINS = {
    'development': ['http://localhost:4200'],
    'testing': ['http://localhost:4200'],
    'production': [o for o in os.getenv('FRONTEND_ORIGINS', '').split(',') if o],
}

BACKEND_URL = BACKEND_URLS.get(ENVIRONMENT, BACKEND_URLS['development'])
CORS_ORIGINS = FRONTEND_ORIGINS.get(ENVIRONMENT, FRONTEND_ORIGINS['development'])

DEBUG = ENVIRONMENT == 'development'
