# config.py - settings for the inventory app, read from the environment
import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


def _int_env(name, default):
    return int(os.environ.get(name, default))


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "saree-boutique-dev-key")

    # sqlite file next to the app unless DATABASE_URL points elsewhere
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///sarees.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # image storage
    UPLOAD_FOLDER = os.environ.get("UPLOAD_FOLDER", os.path.join(BASE_DIR, "uploads"))
    PLACEHOLDER_IMAGE_URL = os.environ.get(
        "PLACEHOLDER_IMAGE_URL",
        "https://images.unsplash.com/photo-1610030469983-98e550d6193c?w=400",
    )
    ALLOWED_IMAGE_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp"}
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024

    # analytics thresholds
    LOW_STOCK_THRESHOLD = _int_env("LOW_STOCK_THRESHOLD", 5)
    FAST_SELLING_THRESHOLD = _int_env("FAST_SELLING_THRESHOLD", 10)
    FAST_SELLING_WINDOW_DAYS = _int_env("FAST_SELLING_WINDOW_DAYS", 30)
    REPORTING_TIMEZONE = os.environ.get("REPORTING_TIMEZONE", "Asia/Kolkata")

    # shop owner login, created on startup
    ADMIN_USERNAME = os.environ.get("ADMIN_USERNAME", "owner")
    ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD", "change-me")

    SEED_SAMPLE_DATA = os.environ.get("SEED_SAMPLE_DATA", "true").lower() == "true"
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
