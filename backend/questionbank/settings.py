from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	# Database
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")

	# Auth configuration
	jwt_secret_key: str = Field(default="change-me", validation_alias="JWT_SECRET_KEY")
	jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
	access_token_expire_minutes: int = Field(default=120, validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES")
	# Seed coordinator, created on first login attempt when all three are set
	seed_name: str | None = Field(default=None, validation_alias="SEED_NAME")
	seed_email: str | None = Field(default=None, validation_alias="SEED_EMAIL")
	seed_password_plain: str | None = Field(default=None, validation_alias="SEED_PASSWORD")

	# Remote tag suggestions (optional); local tags are used when unset or unreachable
	tags_api_url: str | None = Field(default=None, validation_alias="TAGS_API_URL")
	tags_api_timeout: float = Field(default=10.0, validation_alias="TAGS_API_TIMEOUT")

	# Statement editor
	max_image_bytes: int = Field(default=5 * 1024 * 1024, validation_alias="MAX_IMAGE_BYTES")
	# False keeps the legacy behavior: editing the plain text drops embedded images
	statement_preserve_images: bool = Field(default=False, validation_alias="STATEMENT_PRESERVE_IMAGES")
	draft_retention_days: int = Field(default=7, validation_alias="DRAFT_RETENTION_DAYS")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
