"""Catalog manager for merging events into the materialized events file."""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Union

from processor.errors import CatalogIOError, DecodeError, EncodeError
from processor.models import NormalizedEvent

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class CatalogManager:
    """Manager for the events catalog file."""
    
    SECTIONS = ('events', 'overrides')
    INDENT = 2
    
    def merge_and_write(self, base_path: PathLike, new_events: List[NormalizedEvent],
                        output_path: PathLike) -> int:
        """
        Append normalized events to the base catalog and write the result.
        
        Events are appended in the order given, after the base catalog's own
        events. No deduplication is done: an event already present in the
        base file from an earlier run is appended again. ``overrides`` is
        carried over unchanged.
        
        Args:
            base_path: Catalog to read (e.g. events.json)
            new_events: Normalized events from all sources
            output_path: Catalog to write (e.g. events-materialized.json)
            
        Returns:
            Number of events in the written catalog
            
        Raises:
            CatalogIOError: If a file cannot be read or written
            DecodeError: If the base catalog is malformed
            EncodeError: If the merged catalog cannot be serialized
        """
        catalog = self.load_catalog(base_path)
        base_count = len(catalog['events'])
        
        catalog['events'].extend(event.to_dict() for event in new_events)
        
        self.write_catalog(output_path, catalog)
        
        logger.info(
            f"Merged {len(new_events)} events into {base_count} base events",
            extra={'base_path': str(base_path), 'output_path': str(output_path)}
        )
        return len(catalog['events'])
    
    def load_catalog(self, path: PathLike) -> Dict[str, List[Any]]:
        """
        Read a catalog file.
        
        A missing ``events`` or ``overrides`` key is read as an empty list.
        Records are kept as opaque decoded JSON.
        """
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except OSError as e:
            raise CatalogIOError(f"failed to load base events {path}: {e}") from e
        except ValueError as e:
            raise DecodeError(f"failed to decode base events {path}: {e}") from e
        
        if not isinstance(data, dict):
            raise DecodeError(f"failed to decode base events {path}: expected a JSON object")
        
        catalog = {}
        for section in self.SECTIONS:
            records = data.get(section)
            if records is None:
                records = []
            if not isinstance(records, list):
                raise DecodeError(f"failed to decode base events {path}: '{section}' is not a list")
            catalog[section] = records
        return catalog
    
    def write_catalog(self, path: PathLike, catalog: Dict[str, List[Any]]) -> None:
        """
        Write a catalog atomically.
        
        The data is written to a temporary file in the target directory,
        fsynced, then renamed over ``path``. Readers see either the old or
        the new file. On failure the temporary file is removed and ``path``
        is left as it was.
        """
        try:
            data = json.dumps(
                {section: catalog[section] for section in self.SECTIONS},
                indent=self.INDENT,
                ensure_ascii=False
            )
        except (TypeError, ValueError) as e:
            raise EncodeError(f"failed to encode events: {e}") from e
        
        path = Path(path)
        directory = path.parent
        
        try:
            fd, temp_path = tempfile.mkstemp(
                dir=directory, prefix=f".{path.stem}-", suffix=f"{path.suffix}.tmp"
            )
        except OSError as e:
            raise CatalogIOError(f"failed to create temp file in {directory}: {e}") from e
        
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as temp_file:
                temp_file.write(data)
                temp_file.flush()
                os.fsync(temp_file.fileno())
            os.replace(temp_path, path)
        except OSError as e:
            self._remove_quietly(temp_path)
            raise CatalogIOError(f"failed to write merged events to {path}: {e}") from e
        except BaseException:
            self._remove_quietly(temp_path)
            raise
        
        logger.debug(f"Wrote {len(data)} characters to {path}")
    
    def _remove_quietly(self, temp_path: str) -> None:
        try:
            os.remove(temp_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove temp file {temp_path}: {e}")
