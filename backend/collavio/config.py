from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # MongoDB
    MONGODB_URI: str = "mongodb://localhost:27017"
    MONGODB_DB_NAME: str = "collavio"
    # Multi-document writes run in a transaction (needs a replica set or mongos)
    MONGODB_TRANSACTIONS: bool = True

    # Supabase (auth + storage)
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: str = ""
    SUPABASE_SERVICE_KEY: str = ""
    SUPABASE_BUCKET: str = "videos"

    # Cloudinary
    CLOUDINARY_CLOUD_NAME: str = ""
    CLOUDINARY_API_KEY: str = ""
    CLOUDINARY_API_SECRET: str = ""

    # Storage: supabase | cloudinary | local
    STORAGE_PROVIDER: str = "supabase"
    UPLOAD_DIR: str = "uploads"
    SIGNED_URL_EXPIRES_SECONDS: int = 7 * 24 * 60 * 60
    MAX_UPLOAD_BYTES: int = 100 * 1024 * 1024

    # Outbound HTTP (identity provider, storage, publish platform)
    HTTP_TIMEOUT_SECONDS: float = 60.0

    # App
    APP_NAME: str = "Collavio"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5000",
        "http://127.0.0.1:3000",
    ]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
