from typing import List, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PROMPTLAB_", env_file=".env", extra="ignore")

    app_env: str = "dev"
    database_url: str = "sqlite:///./promptlab.db"
    log_level: str = "INFO"
    sql_echo: bool = False
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:5173"]
    # tokens look like "<prefix><user_id>" until a real identity provider is wired in
    auth_token_prefix: str = "mock-"
    # what happens to workflow steps when the prompt they reference is deleted
    prompt_delete_policy: Literal["block", "cascade"] = "block"


settings = Settings()  # reads from env
