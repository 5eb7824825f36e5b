"""
Chain Storage Module

Durable storage of the full block sequence in a single JSON file.

- save(): temp file in the same directory + fsync + os.replace, so a reader
  sees either the previous sequence or the new one, never a partial write
- load(): returns None when nothing usable is stored. A missing file and a
  malformed file look the same to the caller; a malformed file is first
  moved aside to ``<name>.corrupt`` so the next save does not destroy it.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence, Union

from .ledger import (
    Block, MalformedStateError, PersistenceError, parse_finite_float, reject_json_constant,
)


logger = logging.getLogger(__name__)

CORRUPT_SUFFIX = ".corrupt"


class ChainStore:
    """JSON file holding the serialized block sequence."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def save(self, blocks: Sequence[Block]) -> None:
        """
        Overwrite the stored sequence with blocks.

        Raises:
            PersistenceError: If serialization or any file operation fails
        """
        tmp_path = None
        try:
            content = json.dumps([block.to_dict() for block in blocks], indent=2)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp"
            )
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
            tmp_path = None
        except (OSError, TypeError, ValueError) as e:
            logger.error("Failed to save chain to %s: %s", self.path, e)
            raise PersistenceError(f"Could not save chain to {self.path}: {e}") from e
        finally:
            if tmp_path is not None:
                Path(tmp_path).unlink(missing_ok=True)

    def load(self) -> Optional[List[Block]]:
        """
        Load the stored sequence.

        Returns:
            The blocks in stored order, or None if the file is missing,
            unreadable or malformed
        """
        if not self.exists():
            return None

        try:
            return self._parse(self.path.read_text(encoding='utf-8'))
        except (OSError, UnicodeDecodeError, MalformedStateError) as e:
            logger.warning("Discarding unreadable chain file %s: %s", self.path, e)
            self._set_aside()
            return None

    @staticmethod
    def _parse(content: str) -> List[Block]:
        try:
            data = json.loads(
                content,
                parse_constant=reject_json_constant,
                parse_float=parse_finite_float,
            )
        except ValueError as e:
            raise MalformedStateError(f"Invalid JSON: {e}") from e

        if not isinstance(data, list) or not data:
            raise MalformedStateError("Expected a non-empty list of blocks")
        return [Block.from_dict(item) for item in data]

    def _set_aside(self) -> None:
        """Move a malformed chain file out of the way."""
        corrupt_path = self.path.with_name(self.path.name + CORRUPT_SUFFIX)
        try:
            os.replace(self.path, corrupt_path)
            logger.warning("Malformed chain file moved to %s", corrupt_path)
        except OSError as e:
            logger.warning("Could not move malformed chain file aside: %s", e)
