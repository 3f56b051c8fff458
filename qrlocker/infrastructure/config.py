from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "sqlite+pysqlite:///:memory:"
    instructor_table: str = "instructor_profiles"
    locker_table: str = "lockers"
    store_timeout_seconds: float = 5.0

    locker_number_min: int = 1
    locker_number_max: int = 15

    bus_enabled: bool = True
    mqtt_broker_host: str = "localhost"
    mqtt_broker_port: int = 1883
    mqtt_user: str | None = None
    mqtt_pass: str | None = None
    mqtt_client_id: str = "locker-listener"
    scan_topic: str = "locker/scan"
    lock_topic: str = "locker/lock"
    unlock_topic: str = "locker/unlock"
    denied_topic: str = "locker/denied"

    publish_unlock_on_update_failure: bool = True
    shutdown_grace_seconds: float = 5.0

    log_level: str = "INFO"
    openapi_path: Path = Path(__file__).resolve().parents[1] / "openapi/openapi.yaml"


settings = Settings()
