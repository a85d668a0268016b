import json
import os
from pathlib import Path

CONFIG_FILE = ".savekeep"
GLOBAL_CONFIG_FILE = Path.home() / ".savekeep" / "config.json"

# Overrides save_dir, like passing the save directory on the command line.
SAVE_DIR_ENV = "SAVEKEEP_SAVE_DIR"

BACKUP_FOLDER = "save-manager"

DEFAULT_CONFIG = {
    "extension": "",
    "debounce_seconds": 10,
    # Optional: "save_dir", "backup_root", "tracked_file"
}


def load_global_config():
    """Load ~/.savekeep/config.json, shared by every project."""
    if GLOBAL_CONFIG_FILE.exists():
        try:
            return json.loads(GLOBAL_CONFIG_FILE.read_text())
        except (json.JSONDecodeError, OSError):
            pass
    return {}


def save_global_config(updates):
    """Merge updates into ~/.savekeep/config.json."""
    existing = load_global_config()
    existing.update(updates)
    GLOBAL_CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    GLOBAL_CONFIG_FILE.write_text(json.dumps(existing, indent=2) + "\n")
    return GLOBAL_CONFIG_FILE


def find_config(start=None):
    """Walk up from start (default cwd) to find .savekeep, like git finds .git."""
    current = Path(start) if start else Path.cwd()
    for parent in [current, *current.parents]:
        config_path = parent / CONFIG_FILE
        if config_path.is_file():
            return config_path
    return None


def _resolve(value, base):
    path = Path(value).expanduser()
    return path if path.is_absolute() else base / path


def load_config():
    """Return the effective configuration as a dict.

    Merge order: defaults -> global config -> project .savekeep -> environment.
    save_dir and backup_root are always present and absolute; relative values
    are taken from the directory holding .savekeep (or cwd without one).
    """
    config = {**DEFAULT_CONFIG, **load_global_config()}
    base = Path.cwd()

    config_path = find_config()
    if config_path:
        try:
            raw = json.loads(config_path.read_text())
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {config_path}: {e}")
        if not isinstance(raw, dict):
            raise ValueError(f"{config_path} must contain a JSON object")
        config.update(raw)
        base = config_path.parent

    if os.environ.get(SAVE_DIR_ENV):
        config["save_dir"] = os.environ[SAVE_DIR_ENV]

    save_dir = _resolve(config.get("save_dir") or base, base)
    config["save_dir"] = str(save_dir)
    if config.get("backup_root"):
        config["backup_root"] = str(_resolve(config["backup_root"], base))
    else:
        config["backup_root"] = str(save_dir / BACKUP_FOLDER)

    try:
        debounce = float(config["debounce_seconds"])
    except (TypeError, ValueError):
        raise ValueError(f"debounce_seconds must be a number, got {config['debounce_seconds']!r}")
    if debounce <= 0:
        raise ValueError("debounce_seconds must be positive")
    config["debounce_seconds"] = debounce

    return config


def init_config(path=None, save_dir=None, extension=None):
    """Create a .savekeep in the given directory."""
    target = Path(path) if path else Path.cwd()
    config_path = target / CONFIG_FILE
    global_cfg = load_global_config()
    init = {
        "save_dir": save_dir or global_cfg.get("save_dir") or ".",
        "extension": extension if extension is not None else global_cfg.get("extension", ""),
    }
    config_path.write_text(json.dumps(init, indent=2) + "\n")
    return config_path


def save_project_config(updates, config_path=None):
    """Merge updates into the nearest .savekeep, creating one in cwd if none exists."""
    config_path = Path(config_path) if config_path else find_config()
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILE
    existing = {}
    if config_path.exists():
        existing = json.loads(config_path.read_text())
    existing.update(updates)
    config_path.write_text(json.dumps(existing, indent=2) + "\n")
    return config_path
