"""File management module for exported reports."""

import logging
from pathlib import Path
from typing import Any, Dict, List

from ..models.export import ExportPayload

logger = logging.getLogger(__name__)


class FileManager:
    """Manages file storage and organization for exported meeting reports."""

    def __init__(self, data_dir: str = "./data"):
        """Initialize file manager with data directory.

        Args:
            data_dir: Base directory for storing all data
        """
        self.data_dir = Path(data_dir)
        self.exports_dir = self.data_dir / "exports"

        self._ensure_directories()

        logger.info(f"FileManager initialized with data_dir: {self.data_dir}")

    def _ensure_directories(self) -> None:
        """Ensure all required directories exist."""
        for directory in [self.data_dir, self.exports_dir]:
            directory.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Ensured directory exists: {directory}")

    def _unique_path(self, filename: str) -> Path:
        path = self.exports_dir / filename
        counter = 1
        while path.exists():
            path = self.exports_dir / f"{Path(filename).stem}-{counter}{Path(filename).suffix}"
            counter += 1
        return path

    def save_export(self, payload: ExportPayload) -> str:
        """Write an export payload and return its path.

        An existing report with the same name is never overwritten; a numeric
        suffix is added instead.

        Args:
            payload: Encoded report

        Returns:
            Full path to the saved file
        """
        export_path = self._unique_path(payload.filename)
        try:
            with open(export_path, 'wb') as f:
                f.write(payload.data)
        except OSError as e:
            logger.error(f"Error saving export: {e}")
            raise

        logger.info(f"Export saved: {export_path} ({len(payload.data)} bytes, {payload.mime_type})")
        return str(export_path)

    def list_exports(self) -> List[str]:
        """List saved report file names, sorted."""
        exports = sorted(path.name for path in self.exports_dir.iterdir() if path.is_file())
        logger.debug(f"Found {len(exports)} exports")
        return exports

    def get_storage_stats(self) -> Dict[str, Any]:
        """Get storage usage statistics."""
        total_size = 0
        export_count = 0
        for path in self.exports_dir.iterdir():
            if path.is_file():
                export_count += 1
                total_size += path.stat().st_size

        return {
            "total_size_bytes": total_size,
            "total_size_mb": round(total_size / (1024 * 1024), 2),
            "export_count": export_count,
            "data_directory": str(self.data_dir),
        }
