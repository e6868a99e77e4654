from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    db_host: str = "localhost"
    db_port: int = 5432
    db_user: str = "postgres"
    db_password: str = "postgres"
    db_name: str = "commercetax"
    redis_url: str = "redis://localhost:6379/0"
    debug: bool = True
    backfill_batch_size: int = 100
    backfill_idle_seconds: float = 60.0
    backfill_max_iterations: int = 1000
    backfill_hour: int = 0  # Hour of day the monthly trigger fires
    scheduler_enabled: bool = True
    timezone: str = "America/Argentina/Buenos_Aires"

    @property
    def database_url(self) -> str:
        return f"postgresql+asyncpg://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    class Config:
        env_file = ".env"


settings = Settings()
