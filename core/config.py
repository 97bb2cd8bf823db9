import os
from pathlib import Path

# App-Informationen
APP_NAME = "MangaDex PDF Downloader"
APP_VERSION = "1.2.0"
AUTHOR = "Mika534"


# Pfade
BASE_DIR = Path(__file__).parent.parent
DOWNLOADS_DIR = Path(os.environ.get("MDPDF_DOWNLOADS_DIR", Path.home() / "Downloads"))
TEMP_DIR = Path(os.environ.get("MDPDF_TEMP_DIR", BASE_DIR / "temp"))
LOG_DIR = Path(os.environ.get("MDPDF_LOG_DIR", BASE_DIR / "logs"))
SETTINGS_FILE = BASE_DIR / "settings.json"


# Download-Einstellungen
DEFAULT_TIMEOUT = float(os.environ.get("MDPDF_TIMEOUT", 30))
MAX_CONCURRENT_DOWNLOADS = int(os.environ.get("MDPDF_MAX_CONCURRENT_DOWNLOADS", 10))
MAX_PARALLEL_CHAPTERS = int(os.environ.get("MDPDF_MAX_PARALLEL_CHAPTERS", 3))

# PDF-Einstellungen
DEFAULT_JPEG_QUALITY = 85

# MangaDex-spezifisch
API_BASE_URL = os.environ.get("MDPDF_API_BASE_URL", "https://api.mangadex.org")
USER_AGENT = f"MangaDownloader/{APP_VERSION}"

# Standardmäßige Einstellungen
DEFAULT_SETTINGS = {
    "download_dir": str(DOWNLOADS_DIR),
    "temp_dir": str(TEMP_DIR),
    "max_concurrent_downloads": MAX_CONCURRENT_DOWNLOADS,
    "max_parallel_chapters": MAX_PARALLEL_CHAPTERS,
    "timeout": DEFAULT_TIMEOUT,
    "jpeg_quality": DEFAULT_JPEG_QUALITY,
    "jpeg_progressive": True,
    "grayscale": False,
    "compress_pdf": True,
    "data_saver": False,
}
