import os
from datetime import timedelta
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """Base configuration"""
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key')
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', 'dev-jwt-secret')
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=1)

    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'postgresql://localhost/jenga_gateway_dev')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')

    # Jenga Configuration
    JENGA_ENVIRONMENT = os.getenv('JENGA_ENVIRONMENT', 'sandbox')
    JENGA_MERCHANT_CODE = os.getenv('JENGA_MERCHANT_CODE', '')
    JENGA_CONSUMER_SECRET = os.getenv('JENGA_CONSUMER_SECRET', '')
    JENGA_API_KEY = os.getenv('JENGA_API_KEY', '')
    JENGA_PRIVATE_KEY = os.getenv('JENGA_PRIVATE_KEY', '')
    JENGA_PRIVATE_KEY_PATH = os.getenv('JENGA_PRIVATE_KEY_PATH', '')
    JENGA_CALLBACK_URL = os.getenv('JENGA_CALLBACK_URL', '/api/v1/jenga/callback')
    JENGA_SUCCESS_URL = os.getenv('JENGA_SUCCESS_URL', '/payment/success')
    JENGA_FAILURE_URL = os.getenv('JENGA_FAILURE_URL', '/payment/failed')
    JENGA_VERIFY_HASH = _env_bool('JENGA_VERIFY_HASH', False)
    JENGA_TIMEOUT = int(os.getenv('JENGA_TIMEOUT', '90'))
    JENGA_VERIFY_SSL = _env_bool('JENGA_VERIFY_SSL', True)

    # Endpoint overrides; empty values fall back to the published Jenga URLs
    JENGA_SANDBOX_TOKEN_URL = os.getenv('JENGA_SANDBOX_TOKEN_URL', '')
    JENGA_SANDBOX_PAYMENT_URL = os.getenv('JENGA_SANDBOX_PAYMENT_URL', '')
    JENGA_PRODUCTION_TOKEN_URL = os.getenv('JENGA_PRODUCTION_TOKEN_URL', '')
    JENGA_PRODUCTION_PAYMENT_URL = os.getenv('JENGA_PRODUCTION_PAYMENT_URL', '')

    # Status endpoint throttling
    STATUS_RATE_LIMIT = int(os.getenv('STATUS_RATE_LIMIT', '60'))


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    TESTING = False


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    TESTING = False


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    JWT_SECRET_KEY = 'testing-jwt-secret-key-with-enough-length'
    JENGA_ENVIRONMENT = 'sandbox'
    JENGA_MERCHANT_CODE = 'TEST0001'
    JENGA_CONSUMER_SECRET = 'test-consumer-secret'
    JENGA_API_KEY = 'test-api-key-12345'
    JENGA_PRIVATE_KEY = ''
    JENGA_PRIVATE_KEY_PATH = ''
    JENGA_CALLBACK_URL = 'https://merchant.example.com/api/v1/jenga/callback'
    JENGA_SUCCESS_URL = '/payment/success'
    JENGA_FAILURE_URL = '/payment/failed'
    JENGA_VERIFY_HASH = False


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
