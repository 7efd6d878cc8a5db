from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    jwt_expires_minutes: int = 1440
    bcrypt_rounds: int = 12
    log_level: str = "INFO"
    cors_origins: list[str] = ["*"]
    auto_create_schema: bool = True
    low_stock_threshold: int = 1
    receipt_width: int = 32

    admin_email: str | None = None
    admin_password: str | None = None
    admin_full_name: str = "Administrator"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


settings = Settings()
