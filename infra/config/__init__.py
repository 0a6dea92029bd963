from .env_config_provider import DEFAULT_STORAGE_DIR, EnvConfigProvider

__all__ = ["EnvConfigProvider", "DEFAULT_STORAGE_DIR"]
