from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
  model_config = SettingsConfigDict(env_file=".env", extra="ignore")

  database_url: str = "postgresql+asyncpg://tasktrack:tasktrack@db:5432/tasktrack"
  app_secret: str = "dev-secret-change-me"
  app_version: str = "v2026-10-19"
  build_sha: str = "dev"
  api_docs_enabled: bool = True
  log_level: str = "INFO"

  cookie_secure: bool = False
  cookie_domain: str | None = None
  session_ttl_days: int = 14

  rate_limit_login_ip_per_minute: int = 60
  rate_limit_login_email_per_minute: int = 20

  cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
  cors_origin_regex: str = r"^http://(localhost|127\.0\.0\.1):3000$"
  trusted_hosts: str = "localhost,127.0.0.1,0.0.0.0,api,web"

  # value:label:color, comma separated; list position is the display order
  task_statuses: str = "pending:Pending:default,in-progress:In Progress:warning,completed:Completed:success"
  default_task_priority: str = "Medium"
  tasks_page_limit_max: int = 100
  all_tasks_limit_max: int = 1000

  def cors_origin_list(self) -> list[str]:
    return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

  def trusted_host_list(self) -> list[str]:
    return [h.strip() for h in self.trusted_hosts.split(",") if h.strip()]


settings = Settings()
