import os

class BaseConfig:
    SECRET_KEY = os.getenv('SECRET_KEY', 'change-me')
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'sqlite:///quotegrid.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    QUOTEGRID_PROVIDER_URL = os.getenv('QUOTEGRID_PROVIDER_URL', 'http://localhost:8080/api/quoting-excel/')
    QUOTEGRID_PROVIDER_TIMEOUT = int(os.getenv('QUOTEGRID_PROVIDER_TIMEOUT', '10'))
    # None lets the thread pool pick its own size.
    QUOTEGRID_BUILD_WORKERS = int(os.getenv('QUOTEGRID_BUILD_WORKERS', '0')) or None

class DevConfig(BaseConfig):
    DEBUG = True
    ENV = 'development'

class ProdConfig(BaseConfig):
    DEBUG = False
    ENV = 'production'

class TestConfig(BaseConfig):
    TESTING = True
    ENV = 'testing'
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
