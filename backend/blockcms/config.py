import os
from dotenv import load_dotenv

load_dotenv()


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Edit locks
    LOCK_DEFAULT_TTL_MINUTES = int(os.getenv("LOCK_DEFAULT_TTL_MINUTES", "30"))
    LOCK_MAX_TTL_MINUTES = int(os.getenv("LOCK_MAX_TTL_MINUTES", "480"))

    # Version history retention
    VERSION_RETENTION_DAYS = int(os.getenv("VERSION_RETENTION_DAYS", "90"))
    VERSION_KEEP_LATEST = int(os.getenv("VERSION_KEEP_LATEST", "10"))

    # Content tree validation
    CONTENT_MAX_DEPTH = int(os.getenv("CONTENT_MAX_DEPTH", "32"))


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.getenv("DEV_DATABASE_URI", "sqlite:///blockcms-dev.db")


class ProductionConfig(BaseConfig):
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URI")


class TestingConfig(BaseConfig):
    TESTING = True
    LOG_LEVEL = "DEBUG"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"


config_by_name = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}
