from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Server
    port: int | None = None  # read from PORT, like the subordinate server does

    # Live reload
    livereload_port: int = 35729
    livereload_delay: float = 1.0  # seconds to wait for writers to flush

    # Engine
    config_file: str = "begin.yaml"
    debug: bool = False
    log_json: bool = False

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
