"""Shared infrastructure for MangaDex PDF Downloader.

Modules:
- config: App constants, paths and default settings.
- utils: Logging, filenames, settings file.
- request_manager: Playwright request context (HTTP transport).
- pdf_utils: Staged images -> PDF.
"""
