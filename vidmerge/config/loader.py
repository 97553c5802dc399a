import yaml
from pathlib import Path
from .models import AppConfig

DEFAULT_CONFIG_PATH = Path("conf/vidmerge.yaml")

def load_config(config_path: Path) -> AppConfig:
    """Loads YAML config and parses it into AppConfig Pydantic model."""
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {config_path}")

    return AppConfig(**data)

def load_config_or_default(config_path: Path, explicit: bool = False) -> AppConfig:
    """Like load_config, but a missing default config falls back to built-in defaults."""
    if not config_path.exists() and not explicit:
        return AppConfig()
    return load_config(config_path)
