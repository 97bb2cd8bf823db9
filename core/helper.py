"""
Hilfe-Texte für die Kommandozeile des MangaDex PDF Downloaders
"""

DESCRIPTION = (
    "Lädt MangaDex-Kapitel herunter und speichert jedes Kapitel als eigene PDF. "
    "Kapitel werden als ID:NUMMER[:NAME] angegeben oder per --chapters-file."
)

# Hilfe-Texte für alle Argumente
ARGUMENT_HELP = {
    "chapters": "Kapitel im Format ID:NUMMER[:NAME], z.B. 1a2b3c4d-...:12:Der Anfang",
    "chapters_file": "JSON-Datei mit einer Liste von {\"id\", \"number\", \"name\"} Objekten.",
    "title": "Manga-Titel. Wird als Unterordner und im PDF-Dateinamen verwendet.",
    "dest": "Zielordner für die PDFs. Standard: Download-Ordner aus den Einstellungen.",
    "workers": "Maximale Anzahl gleichzeitiger Bild-Downloads pro Kapitel.",
    "parallel_chapters": "Maximale Anzahl gleichzeitig verarbeiteter Kapitel.",
    "timeout": "Timeout pro Anfrage in Sekunden.",
    "data_saver": "Komprimierte Bilder (data-saver) statt Originalqualität laden.",
    "grayscale": "Konvertiert alle Bilder zu Graustufen. Spart Speicherplatz.",
    "jpeg_quality": "JPEG-Komprimierungsqualität (1-100). Höhere Werte = bessere Qualität aber größere Dateien.",
    "settings": "Pfad zur settings.json (Standard: settings.json im Programmordner).",
    "save_settings": "Aktuelle Optionen als neue Standard-Einstellungen speichern.",
    "verbose": "Ausführliche Ausgabe (jede Seite).",
}

EPILOG = "\n".join([
    "Hinweise:",
    "• Fehlgeschlagene Bilder werden übersprungen, die PDF enthält dann weniger Seiten",
    "• Fehlgeschlagene Kapitel werden in error_log.txt im Zielordner protokolliert",
    "• Bei langsamen Downloads: Das ist normal, da das Programm die Server nicht überlasten möchte",
])
