from __future__ import annotations

import shlex
from functools import lru_cache
from pathlib import Path

from pydantic import Field, NonNegativeFloat, PositiveInt, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DU_COMMAND = "ionice -c 3 du -ks"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="QUICKDU_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "QuickDU"
    environment: str = "production"
    api_host: str = "0.0.0.0"
    api_port: int = 8080
    log_level: str = "INFO"

    home_root: Path = Field(default=Path("/var/lib/quickdu/home"))
    state_root: Path = Field(default=Path("/var/lib/quickdu/state"))
    temp_root: Path | None = None
    database_url: str | None = None

    jobs_dirname: str = "jobs"
    builds_dirname: str = "builds"
    home_label: str = "HOME"
    temp_label: str = "tmpdir"

    du_command: str = DEFAULT_DU_COMMAND
    du_timeout_seconds: PositiveInt = 20
    quiet_period_seconds: PositiveInt = 15 * 60
    directory_pacing_seconds: NonNegativeFloat = 1.0

    job_retention_builds: PositiveInt = 10

    @field_validator("home_root", "state_root", "temp_root", mode="before")
    @classmethod
    def _normalize_path(cls, value: str | Path | None) -> Path | None:
        if value is None or value == "":
            return None
        raw = str(value)
        if "~" in raw:
            raise ValueError("Home expansion syntax is not allowed in paths")
        if "$" in raw:
            raise ValueError("Environment variable syntax is not allowed in paths")
        path = Path(raw)
        if not path.is_absolute():
            raise ValueError("Path settings must be absolute")
        return path

    @field_validator("jobs_dirname", "builds_dirname")
    @classmethod
    def _validate_dirname(cls, value: str) -> str:
        token = value.strip()
        if not token or "/" in token or token in {".", ".."}:
            raise ValueError("Directory names must be a single path component")
        return token

    @model_validator(mode="after")
    def _validate_runtime_constraints(self) -> "Settings":
        self.home_root = self.home_root.resolve(strict=False)
        self.state_root = self.state_root.resolve(strict=False)
        if self.temp_root is not None:
            self.temp_root = self.temp_root.resolve(strict=False)

        self.state_root.mkdir(parents=True, exist_ok=True)

        try:
            tokens = shlex.split(self.du_command)
        except ValueError as exc:
            raise ValueError(f"du_command cannot be parsed: {exc}") from exc
        if not tokens:
            raise ValueError("du_command cannot be blank")

        if not self.home_label.strip():
            raise ValueError("home_label cannot be blank")
        if not self.temp_label.strip():
            raise ValueError("temp_label cannot be blank")

        return self

    @property
    def du_command_args(self) -> list[str]:
        return shlex.split(self.du_command)

    @property
    def effective_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        db_path = self.state_root / "quickdu.sqlite3"
        return f"sqlite:///{db_path.as_posix()}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
