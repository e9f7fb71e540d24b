"""Exporter SPI and implementations."""

from .base import BaseExporter
from .pocketbase_exporter import PocketBaseExporter
from .sqlite_exporter import SQLiteExporter

__all__ = ["BaseExporter", "PocketBaseExporter", "SQLiteExporter"]
