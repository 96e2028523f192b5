from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    app_name: str = "image-filter-relay"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "info"
    cors_origins: list[str] = ["*"]

    uploads_path: str = "uploads"
    max_upload_bytes: int = 50 * 1024 * 1024

    openai_api_key: str = ""
    openai_model: str = "gpt-image-1"

    gcp_project_id: str | None = None
    gcp_client_email: str | None = None
    gcp_private_key: str | None = None
    gcs_bucket_name: str = "pixmix-6a12e.firebasestorage.app"
    firestore_collection: str = "user_tokens"

    auth_service_url: str = "https://gcloud-authentication-493914627855.us-central1.run.app"
    fcm_project_id: str = "pixmix-6a12e"
    notify_max_attempts: int = 3
    notify_backoff_initial: float = 1.0
    http_timeout: float = 15.0

    auth_enabled: bool = True
    tokeninfo_url: str = "https://oauth2.googleapis.com/tokeninfo"


settings = Settings()
