from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', extra='ignore')

    app_name: str = 'Library Desk'
    app_env: str = 'local'
    app_timezone: str = 'Asia/Kolkata'
    database_url: str = 'sqlite:///./libdesk.db'
    auth_secret: str = 'change-me'
    auth_session_expiry_hours: int = 24
    auth_cookie_secure: bool = False
    default_admin_username: str = 'admin'
    default_admin_password: str = 'admin12345'
    maintenance_mode: str = ''
    maintenance_allow_paths: str = '/health,/api/auth'
    expiring_soon_days: int = 5
    registration_number_start: int = 1
    reminder_webhook_url: str = ''
    reminder_timeout_seconds: float = 10.0
    reminder_time: str = '16:00'
    enable_scheduler: bool = True
    db_slow_query_ms: int = 100
    metrics_slow_ms: int = 200

    @property
    def maintenance_enabled(self) -> bool:
        return (self.maintenance_mode or '').strip().lower() in ('1', 'true')

    @property
    def maintenance_allow_prefixes(self) -> tuple[str, ...]:
        return tuple(p.strip() for p in (self.maintenance_allow_paths or '').split(',') if p.strip())


settings = Settings()
