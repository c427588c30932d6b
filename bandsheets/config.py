from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "BS_", "env_file": ".env", "env_file_encoding": "utf-8"}

    jwt_secret: str = Field(min_length=32)
    jwt_expire_minutes: int = Field(default=43200)
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False)
    db_path: str = Field(default="band_sheets.db")
    cors_origins: str = Field(default="http://localhost:3000")
    user_store: str = Field(default="sqlite", pattern=r"^(sqlite|memory)$")

    # Imported sheets are private until the owner shares them
    import_default_public: bool = Field(default=False)
    sheet_default_public: bool = Field(default=True)
    setlist_default_public: bool = Field(default=True)

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


settings = Settings()
