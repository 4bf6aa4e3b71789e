from pydantic import field_validator
from pydantic_settings import BaseSettings

DEFAULT_ORGANIZER = "Environmental Protection Group"


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///data/ecomap.db"
    log_level: str = "INFO"
    api_key: str = ""
    seed_path: str | None = None
    refresh_interval_seconds: int = 300
    default_organizer: str = DEFAULT_ORGANIZER
    default_map_center: str = "42.3601,-71.0589"

    @field_validator("default_organizer", mode="before")
    @classmethod
    def default_empty_organizer(cls, v: str) -> str:
        if not v or not v.strip():
            return DEFAULT_ORGANIZER
        return v

    @property
    def map_center(self) -> tuple[float, float]:
        lat, lng = self.default_map_center.split(",")
        return float(lat), float(lng)

    model_config = {"env_prefix": "", "case_sensitive": False}


settings = Settings()
