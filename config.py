import os
from datetime import timedelta
from dotenv import load_dotenv

load_dotenv()

class Config:
    # --- Flask Core ---
    SECRET_KEY = os.getenv('SECRET_KEY', 'fallback-secret-key')
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'sqlite:///brosolve.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # --- JWT Authentication (Bearer header only) ---
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-jwt-secret")
    JWT_TOKEN_LOCATION = ["headers"]
    JWT_HEADER_TYPE = "Bearer"
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=int(os.getenv("JWT_ACCESS_TOKEN_EXPIRES_DAYS", "7")))

    # --- CORS ---
    CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",") if o.strip()]

    # --- Uploads ---
    UPLOAD_FOLDER = os.getenv("UPLOAD_FOLDER", os.path.join(os.getcwd(), "uploads"))
    MAX_CONTENT_LENGTH = int(os.getenv("MAX_CONTENT_LENGTH", str(16 * 1024 * 1024)))
    MAX_ATTACHMENTS = int(os.getenv("MAX_ATTACHMENTS", "3"))

    # --- Typing presence ---
    TYPING_TTL_SECONDS = float(os.getenv("TYPING_TTL_SECONDS", "5"))

    # --- Mail (optional; notices become no-ops when missing) ---
    MAILER_SMTP_HOST = os.getenv("MAILER_SMTP_HOST", "")
    MAILER_SMTP_PORT = int(os.getenv("MAILER_SMTP_PORT", "587"))
    MAILER_USER = os.getenv("MAILER_USER", "")
    MAILER_PASS = os.getenv("MAILER_PASS", "")
    MAILER_FROM = os.getenv("MAILER_FROM", "BROSolve <noreply@brosolve.example>")
    STAFF_NOTIFY_EMAIL = os.getenv("STAFF_NOTIFY_EMAIL", "")

    # --- WhatsApp via Twilio (optional) ---
    TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID", "")
    TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN", "")
    TWILIO_WHATSAPP_FROM = os.getenv("TWILIO_WHATSAPP_FROM", "")

    # --- Logging ---
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_DIR = os.getenv("LOG_DIR", os.path.join(os.getcwd(), "logs"))

    # Development-only role helpers (/api/auth/dev/*)
    ENABLE_DEV_ROUTES = os.getenv("ENABLE_DEV_ROUTES", "false").lower() == "true"
