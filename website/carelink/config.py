import os
import warnings

from dotenv import load_dotenv

load_dotenv()


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY")
    if not SECRET_KEY:
        warnings.warn("SECRET_KEY not set, using an insecure development key", RuntimeWarning, stacklevel=2)
        SECRET_KEY = "carelink-dev-key"

    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///carelink.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Pending appointments older than this are urgent and may be auto-confirmed
    AUTO_CONFIRM_THRESHOLD_HOURS = float(os.getenv("AUTO_CONFIRM_THRESHOLD_HOURS", "2"))
    STAFF_NOTIFICATION_LIMIT = int(os.getenv("STAFF_NOTIFICATION_LIMIT", "3"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    AUTO_CONFIRM_THRESHOLD_HOURS = 2
    STAFF_NOTIFICATION_LIMIT = 3
    LOG_LEVEL = "DEBUG"
