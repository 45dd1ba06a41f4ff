"""Driver configuration."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Driver settings loaded from environment variables."""

    # Docker settings
    docker_socket: str = "unix:///var/run/docker.sock"
    docker_client_timeout: int = 300  # container create can be slow (image extraction)

    # Container operations
    container_label_prefix: str = "labnode"

    # Permission bits for per-node lab directories
    lab_dir_mode: int = 0o755

    # Logging configuration
    log_format: str = "json"  # "json" or "text"
    log_level: str = "INFO"

    class Config:
        env_prefix = "LABNODE_"


settings = Settings()
