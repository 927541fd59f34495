from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # env.config is the deployment file shared with the old front end; .env wins when both exist.
    model_config = SettingsConfigDict(env_file=('env.config', '.env'), extra='ignore')

    app_name: str = 'Attendance Desk'
    app_env: str = 'local'
    app_timezone: str = 'Africa/Cairo'
    jwt_secret: str = 'topphysics_secret'
    token_ttl_minutes: int = 120
    db_name: str = 'topphysics'
    database_url: str = ''
    default_admin_id: str = 'admin'
    default_admin_password: str = ''
    default_admin_name: str = 'Administrator'
    cors_origins: list[str] = ['http://localhost:3000', 'http://127.0.0.1:3000']
    default_cache_ttl: int = 5
    db_slow_query_ms: int = 100
    metrics_slow_ms: int = 200

    @property
    def resolved_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return f'sqlite:///./{self.db_name}.db'


settings = Settings()


def get_settings() -> Settings:
    return settings
