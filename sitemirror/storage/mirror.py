"""
On-disk mirror: URL to local path mapping and file persistence.
"""

import json
import logging
import posixpath
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Any, Optional
from urllib.parse import urlparse, unquote

from ..errors import ConfigError, PersistError


INDEX_DOCUMENT = 'index.html'
MANIFEST_FILE = 'manifest.json'


def url_to_local_path(url: str) -> str:
    """
    Map an absolute URL to a relative path inside the mirror root.

    ``http://Host/a/b.html`` -> ``host/a/b.html``; directory-style paths
    (empty or ending in ``/``) get ``index.html``. Dot segments are dropped
    so the result never leaves the mirror root. Query and fragment are not
    part of the path.
    """
    parsed = urlparse(url)
    host = (parsed.hostname or 'unknown').lower()

    path = unquote(parsed.path)
    if path == '' or path.endswith('/'):
        path = path + INDEX_DOCUMENT

    segments = [s for s in path.split('/') if s not in ('', '.', '..')]
    return posixpath.join(host, *segments)


@dataclass
class MirrorEntry:
    """One fetched resource materialized in the mirror."""
    url: str
    local_path: str
    content: bytes
    content_type: str = ''


class MirrorStorage:
    """Writes fetched resources into a directory tree rooted at ``output_dir``."""

    def __init__(self, output_dir: str, write_manifest: bool = False):
        self.output_dir = Path(output_dir)
        self.write_manifest = write_manifest
        self.logger = logging.getLogger(__name__)
        self.manifest: Dict[str, Dict[str, str]] = {}
        self.stats = {
            'files_written': 0,
            'files_rewritten': 0,
            'storage_errors': 0,
            'total_size_bytes': 0
        }

    async def initialize(self):
        """Create the mirror root."""
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigError(f"Cannot create output directory {self.output_dir}: {e}") from e

        self.logger.info(f"Mirror storage initialized at {self.output_dir}")

    def full_path(self, local_path: str) -> Path:
        return self.output_dir.joinpath(*local_path.split('/'))

    def _write(self, local_path: str, content: bytes) -> Path:
        file_path = self.full_path(local_path)
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_bytes(content)
        except OSError as e:
            self.stats['storage_errors'] += 1
            raise PersistError(str(file_path), f"Cannot write {file_path}: {e}") from e
        return file_path

    async def save(self, url: str, content: bytes, content_type: str = '') -> MirrorEntry:
        """
        Persist fetched content under its mapped path.

        Raises:
            PersistError: if the directory or file cannot be written
        """
        entry = MirrorEntry(
            url=url,
            local_path=url_to_local_path(url),
            content=content,
            content_type=content_type,
        )
        file_path = self._write(entry.local_path, content)

        self.stats['files_written'] += 1
        self.stats['total_size_bytes'] += len(content)
        self.manifest[url] = {
            'local_path': entry.local_path,
            'content_type': content_type,
            'saved_at': datetime.now(timezone.utc).isoformat(),
        }

        self.logger.debug(f"Saved {url} to {file_path}")
        return entry

    async def overwrite(self, entry: MirrorEntry, content: bytes) -> MirrorEntry:
        """Replace a saved file with rewritten content."""
        self._write(entry.local_path, content)
        entry.content = content
        self.stats['files_rewritten'] += 1
        return entry

    def get_stats(self) -> Dict[str, Any]:
        """Get storage statistics."""
        return self.stats.copy()

    async def close(self, extra: Optional[Dict[str, Any]] = None):
        """Write the manifest when enabled."""
        if not self.write_manifest:
            return

        manifest_file = self.output_dir / MANIFEST_FILE
        data = {
            'written_at': datetime.now(timezone.utc).isoformat(),
            'entries': self.manifest,
        }
        if extra:
            data.update(extra)

        try:
            with open(manifest_file, 'w', encoding='utf-8') as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            self.logger.info(f"Manifest written to {manifest_file}")
        except OSError as e:
            self.logger.error(f"Error writing manifest: {e}")
