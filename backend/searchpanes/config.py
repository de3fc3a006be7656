from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, AliasChoices
from typing import Optional


class Settings(BaseSettings):
    """Service configuration using Pydantic v2 settings.

    - Parses comma-separated CORS origins into a list
    - Reads environment from APP_ENV or ENVIRONMENT
    - Ignores unknown env keys
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "SearchPanes Options API"
    environment: str = Field(default="dev", validation_alias=AliasChoices("APP_ENV", "ENVIRONMENT"))

    # CORS (comma-separated string)
    cors_origins: str = Field(default="http://localhost:3000,http://127.0.0.1:3000")

    # Default data source used by editors registered without an explicit engine
    database_url: str = Field(default="sqlite:///.data/panes.sqlite", validation_alias=AliasChoices("DATABASE_URL"))

    # Override the dialect used when rendering SQL (defaults to the engine's dialect)
    sql_dialect: Optional[str] = Field(default=None, validation_alias=AliasChoices("SQL_DIALECT"))

    concurrent_queries: bool = Field(
        default=False,
        validation_alias=AliasChoices("CONCURRENT_PANE_QUERIES"),
        description="Run the count and label queries of a pane on separate threads",
    )

    log_sql: bool = Field(
        default=False,
        validation_alias=AliasChoices("LOG_SQL"),
        description="Log generated SQL at INFO instead of DEBUG",
    )

    @property
    def cors_origins_list(self) -> list[str]:
        return [x.strip() for x in str(self.cors_origins).split(",") if x.strip()]


settings = Settings()
