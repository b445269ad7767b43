import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _database_url():
    # Prioritize 'DATABASE_URL' from environment (Docker/Render)
    # Fallback to local SQLite if no URL is found
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        return "sqlite:///quiz_app.db"
    # SQLAlchemy requires 'postgresql://' instead of 'postgres://'
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)
    return database_url


class Config:
    # Flask
    SECRET_KEY = os.getenv("SECRET_KEY", "dev_secret_key_fallback")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Database
    SQLALCHEMY_DATABASE_URI = _database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Groq question generation
    GROQ_API_KEY = os.getenv("GROQ_API_KEY", "")
    GROQ_MODEL = os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile")
    QUESTION_MAX_RETRIES = int(os.getenv("QUESTION_MAX_RETRIES", "3"))
    QUESTION_RETRY_DELAY = float(os.getenv("QUESTION_RETRY_DELAY", "1.0"))

    # Quiz rules
    QUIZ_TIME_LIMIT_MINUTES = int(os.getenv("QUIZ_TIME_LIMIT_MINUTES", "15"))
    MAX_TAB_SWITCHES = int(os.getenv("MAX_TAB_SWITCHES", "3"))

    # Admin dashboard
    ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "")
    ADMIN_PASSWORD_HASH = os.getenv("ADMIN_PASSWORD_HASH", "")

    # Display timezone, default WIB (UTC+7)
    TIMEZONE_OFFSET_HOURS = int(os.getenv("TIMEZONE_OFFSET_HOURS", "7"))
