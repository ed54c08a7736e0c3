from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Trendline API"
    app_env: str = "development"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    cors_origins: str = "http://localhost:3000"
    cors_allow_credentials: bool = True
    log_level: str = "INFO"
    request_id_header: str = "X-Request-ID"

    # bedrock | openai_compatible
    generator_backend: str = "bedrock"
    aws_region: str = "us-east-1"
    bedrock_model_id: str = "amazon.nova-pro-v1:0"
    # OpenAI-compatible chat completions endpoint (DeepSeek by default).
    chat_api_base_url: str = "https://api.deepseek.com"
    chat_api_key: str = ""
    chat_model: str = "deepseek-chat"
    generator_temperature: float = 0.2
    generator_max_tokens: int = 4096
    generator_timeout_seconds: float = 120.0
    generation_max_attempts: int = 2

    max_upload_files: int = 5
    max_upload_file_bytes: int = 2 * 1024 * 1024
    max_reference_chars: int = 6000
    reference_preview_chars: int = 240
    ingestion_concurrency: int = 4
    url_fetch_timeout_seconds: float = 10.0
    document_parse_timeout_seconds: float = 20.0
    fetch_user_agent: str = "TrendlineBot/1.0 (+https://github.com/trendline/trendline)"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


settings = Settings()
