from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "archive"
    db_username: str = "archive"
    db_password: str = "secret"
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10

    max_upload_bytes: int = 15 * 1024 * 1024

    storage_backend: str = "local"
    storage_files_root: str = "/app/files"
    storage_public_base_url: str = "http://localhost:8000/files"
    storage_url: str = ""
    storage_bucket: str = "documents"
    storage_api_key: str = ""
    storage_timeout_seconds: int = 30

    ocr_trigger_url: str = "http://localhost:54321/functions/process-ocr"
    ocr_trigger_token: str = ""
    ocr_trigger_timeout_seconds: int = 10

    notification_url: str = ""
    notification_timeout_seconds: int = 10

    status_poll_interval_seconds: float = 2.0
    status_dedup_window_seconds: float = 2.0

    job_poll_interval_seconds: int = 5
    worker_batch_size: int = 50
    worker_max_parallel: int = 10
    pdf_engine: str = "pdfplumber"
    tesseract_cmd: str = ""
    ocr_language: str = "eng"
    ocr_error_max_length: int = 500

    log_sink_url: str = ""
    log_flush_interval_seconds: float = 5.0
    log_queue_max_size: int = 100
