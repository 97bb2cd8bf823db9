"""PDF utility functions for the MangaDex PDF Downloader.

This module turns staged page images into one PDF per chapter. Every image
becomes its own page whose size equals the image's pixel size (1 px = 1 pt).
"""

import logging
import os
import struct
from io import BytesIO
from pathlib import Path
from typing import Iterable, List, Tuple, Union

from PIL import Image, UnidentifiedImageError
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from .config import DEFAULT_JPEG_QUALITY
from .errors import EmptyChapterError, ImageDecodeError, PdfWriteError
from .models import AssemblyResult, PdfPage, StagedPage

logger = logging.getLogger(__name__)

# libjpeg kann keine größeren Bilder schreiben
JPEG_MAX_DIMENSION = 65500

# JPEG-Puffer oder (bei zu großen Bildern) das dekodierte Bild selbst
PageImage = Union[BytesIO, Image.Image]


def prepare_page_image(
    raw: bytes,
    jpeg_quality: int = DEFAULT_JPEG_QUALITY,
    grayscale: bool = False,
    progressive: bool = True,
) -> Tuple[int, int, PageImage]:
    """Dekodiert ein Bild und kodiert es als JPEG für die PDF neu.

    Args:
        raw: Bilddaten wie vom Server geliefert
        jpeg_quality: JPEG-Qualität (1-100)
        grayscale: Bild in Graustufen konvertieren
        progressive: Progressive JPEGs schreiben

    Returns:
        (Breite, Höhe, JPEG-Puffer oder PIL-Bild). Die Abmessungen sind die des Originals.

    Raises:
        ValueError, OSError: wenn Pillow das Bild nicht lesen kann
    """
    with Image.open(BytesIO(raw)) as _img:
        # load() dekodiert vollständig, abgeschnittene Dateien fallen hier auf
        _img.load()
        width, height = _img.size
        if width <= 0 or height <= 0:
            raise ValueError(f"ungültige Abmessungen {width}x{height}")

        if grayscale:
            img = _img.convert("L")
        elif _img.mode in ("RGBA", "LA") or (_img.mode == "P" and "transparency" in _img.info):
            # Transparenz auf Weiß setzen
            rgba = _img.convert("RGBA")
            img = Image.new("RGB", rgba.size, (255, 255, 255))
            img.paste(rgba, mask=rgba.split()[3])
        else:
            img = _img.convert("RGB")

    if max(width, height) > JPEG_MAX_DIMENSION:
        # Long-Strip-Seiten passen nicht in ein JPEG, reportlab bettet sie verlustfrei (Flate) ein
        logger.debug("Bild %dx%d zu groß für JPEG, wird unverändert eingebettet", width, height)
        return width, height, img

    quality = int(max(1, min(100, jpeg_quality)))
    out = BytesIO()
    try:
        img.save(out, format="JPEG", quality=quality, optimize=True, progressive=bool(progressive))
    except OSError:
        # Fallback ohne optimize/progressive (große Bilder sprengen sonst den Encoder-Puffer)
        out = BytesIO()
        try:
            img.save(out, format="JPEG", quality=quality)
        except OSError as e:
            logger.debug("JPEG-Kodierung fehlgeschlagen (%s), Bild wird unverändert eingebettet", e)
            return width, height, img
    out.seek(0)
    return width, height, out


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Staging-Datei %s konnte nicht gelöscht werden: %s", path, e)


def write_atomic(data: bytes, output_path: Union[str, Path]) -> None:
    """Schreibt ``data`` über eine temporäre Nachbardatei und ``os.replace``."""
    output_path = Path(output_path)
    tmp_path = output_path.with_name(f".{output_path.name}.part")
    try:
        with open(tmp_path, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, output_path)
    except OSError as e:
        _discard(tmp_path)
        raise PdfWriteError(f"PDF konnte nicht geschrieben werden ({output_path}): {e}") from e


class PdfAssembler:
    """Baut aus gestagten Seiten eine PDF, Seite für Seite und strikt sequentiell.

    Jede gestagte Datei wird direkt nach dem Einbetten gelöscht. Nicht
    dekodierbare Seiten werden übersprungen (wie fehlgeschlagene Downloads).
    """

    def __init__(
        self,
        compress: bool = True,
        jpeg_quality: int = DEFAULT_JPEG_QUALITY,
        grayscale: bool = False,
        progressive: bool = True,
    ):
        self.compress = compress
        self.jpeg_quality = jpeg_quality
        self.grayscale = grayscale
        self.progressive = progressive

    def _load(self, page: StagedPage) -> Tuple[int, int, PageImage]:
        try:
            raw = page.local_path.read_bytes()
            return prepare_page_image(raw, self.jpeg_quality, self.grayscale, self.progressive)
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError, SyntaxError, struct.error) as e:
            raise ImageDecodeError(page.ordinal, str(e) or type(e).__name__) from e

    def assemble(self, pages: Iterable[StagedPage], output_path: Union[str, Path]) -> AssemblyResult:
        """Bettet alle Seiten in Reihenfolge ein und schreibt die PDF einmalig.

        Raises:
            EmptyChapterError: keine Seite ließ sich einbetten, es wird nichts geschrieben
            PdfWriteError: Schreiben der PDF fehlgeschlagen
        """
        output_path = Path(output_path)
        result = AssemblyResult(output_path=output_path)
        pending: List[StagedPage] = list(pages)
        buffer = BytesIO()
        c = canvas.Canvas(buffer, pageCompression=1 if self.compress else 0)

        try:
            while pending:
                page = pending[0]
                try:
                    width, height, data = self._load(page)
                except ImageDecodeError as e:
                    logger.warning("Seite %d übersprungen: %s", page.ordinal, e.reason)
                    result.skipped.append((page.ordinal, e.reason))
                else:
                    c.setPageSize((width, height))
                    c.drawImage(ImageReader(data), 0, 0, width=width, height=height)
                    c.showPage()
                    result.pages.append(PdfPage(page.ordinal, width, height))
                pending.pop(0)
                _discard(page.local_path)
        finally:
            for page in pending:
                _discard(page.local_path)

        if not result.pages:
            raise EmptyChapterError(f"keine verwendbaren Seiten für {output_path.name}")

        c.save()
        write_atomic(buffer.getvalue(), output_path)
        logger.debug("%s geschrieben (%d Seiten)", output_path, result.page_count)
        return result
