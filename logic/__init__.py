"""Core logic package for MangaDex PDF Downloader.

Modules:
- fetcher: Manifest resolution and bounded parallel page download.
- downloader: Per-chapter pipeline and multi-chapter coordinator (GUI-agnostic).
- progress: Progress sinks (logging, callbacks).
"""
