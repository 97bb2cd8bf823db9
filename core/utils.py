import os
import re
import json
import logging
from pathlib import Path
from typing import Optional, Dict, Any, Union
from datetime import datetime

from .config import LOG_DIR, SETTINGS_FILE

def setup_logger(name: str, log_dir: Optional[Path] = None, level: int = logging.INFO) -> logging.Logger:
    """Konfiguriert einen Logger mit Datei- und Konsolenausgabe."""
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if logger.handlers:
        # bereits eingerichtet (z.B. zweiter CLI-Aufruf im selben Prozess)
        return logger

    # Format für die Logs
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Log-Datei
    log_dir = Path(log_dir) if log_dir else LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"{datetime.now().strftime('%Y%m%d')}.log"
    file_handler = logging.FileHandler(log_file, encoding='utf-8')
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    # Konsole
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger

# Datei-Operationen
def ensure_directory(path: Union[str, Path]) -> Path:
    """Stellt sicher, dass ein Verzeichnis existiert und gibt den Path zurück."""
    path = Path(path) if isinstance(path, str) else path
    path.mkdir(parents=True, exist_ok=True)
    return path

def get_valid_filename(name: str) -> str:
    """Konvertiert einen String in einen gültigen Dateinamen."""
    s = str(name).strip().replace(' ', '_')
    s = re.sub(r'(?u)[^-\w.]', '', s)
    return s

def sanitize_title(title: str) -> str:
    """Entfernt Zeichen, die in Datei- und Ordnernamen nicht erlaubt sind."""
    s = re.sub(r'[\\/:*?"<>|]', '_', str(title)).strip().strip('.')
    return s or "Manga"

def format_chapter_name(number: str) -> str:
    """'12' -> 'Chapter_012', '12.5' -> 'Chapter_012.5', sonst bereinigt."""
    token = str(number).strip()
    m = re.fullmatch(r"(\d+)(?:\.(\d+))?", token)
    if m:
        main_part, dec_part = m.group(1), m.group(2)
        if dec_part:
            return f"Chapter_{int(main_part):03d}.{dec_part}"
        return f"Chapter_{int(main_part):03d}"
    cleaned = get_valid_filename(token)
    return f"Chapter_{cleaned}" if cleaned else "Chapter_000"

def log_error_to_file(error_msg: str, output_folder: Union[str, Path]) -> None:
    """Hängt eine Fehlermeldung an error_log.txt im Zielordner an (best effort)."""
    try:
        os.makedirs(output_folder, exist_ok=True)
        log_path = os.path.join(output_folder, "error_log.txt")
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        with open(log_path, "a", encoding="utf-8") as f:
            f.write(f"[{timestamp}] {error_msg}\n")
    except OSError:
        logging.getLogger(__name__).warning("Konnte error_log.txt in %s nicht schreiben", output_folder)

def format_time(seconds: float) -> str:
    seconds = max(0, seconds)
    if seconds < 3600:
        return f"{int(seconds//60):02d}:{int(seconds%60):02d}"
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    seconds = int(seconds % 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"

# Einstellungen
def load_settings(settings_file: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """Lädt die Einstellungen aus der settings.json."""
    settings_file = Path(settings_file) if settings_file else SETTINGS_FILE
    if settings_file.exists():
        try:
            with open(settings_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
            return data if isinstance(data, dict) else {}
        except json.JSONDecodeError:
            logging.getLogger(__name__).warning("Ungültige Einstellungsdatei ignoriert: %s", settings_file)
    return {}

def save_settings(settings: Dict[str, Any], settings_file: Optional[Union[str, Path]] = None) -> None:
    """Speichert die Einstellungen in der settings.json."""
    settings_file = Path(settings_file) if settings_file else SETTINGS_FILE
    with open(settings_file, 'w', encoding='utf-8') as f:
        json.dump(settings, f, indent=4, ensure_ascii=False, sort_keys=True)
