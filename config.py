import os

# Database
DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "cutmatch")

# Security
SECRET_KEY = os.getenv("JWT_SECRET", "change-this-secret")
ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_DAYS = int(os.getenv("JWT_EXPIRE_DAYS", 30))
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", 12))

# App
PORT = int(os.getenv("PORT", 8000))
APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# 200 requests per client every 15 minutes on /api
RATE_LIMIT_MAX = int(os.getenv("RATE_LIMIT_MAX", 200))
RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", 15 * 60))

SALON_SEARCH_RADIUS_KM = float(os.getenv("SALON_SEARCH_RADIUS_KM", 20))

# Image hosting
CLOUDINARY_CLOUD_NAME = os.getenv("CLOUDINARY_CLOUD_NAME", "")
CLOUDINARY_API_KEY = os.getenv("CLOUDINARY_API_KEY", "")
CLOUDINARY_API_SECRET = os.getenv("CLOUDINARY_API_SECRET", "")
CLOUDINARY_FOLDER = os.getenv("CLOUDINARY_FOLDER", "cut-match-profiles")
UPLOAD_TIMEOUT_SECONDS = float(os.getenv("UPLOAD_TIMEOUT_SECONDS", 30))
ALLOWED_IMAGE_EXTENSIONS = {"jpg", "jpeg", "png"}


def is_production() -> bool:
    return APP_ENV == "production"
