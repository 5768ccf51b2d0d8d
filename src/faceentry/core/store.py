"""Persistent identity -> embedding store.

The whole database lives in memory and is written to a single ``.npz``
file after every mutation. Writes go to a temporary sibling file that is
then renamed over the target, so the file on disk is always either the
previous or the new snapshot.
"""

from __future__ import annotations

import logging
import os
import tempfile
import threading
import zipfile
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np

from faceentry.core.embedding import as_vector
from faceentry.core.errors import ShapeMismatchError, StorageError

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray

logger = logging.getLogger(__name__)

FORMAT_VERSION = 2


class FaceStore:
    """Thread-safe in-memory face database with write-through persistence.

    Entries keep the order in which each identity was first enrolled;
    overwriting an identity does not move it.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        self._entries: dict[str, NDArray[np.float32]] = {}

    # -- Public API ---------------------------------------------------------

    def load(self) -> int:
        """Replace the in-memory state with the persisted snapshot.

        A missing file yields an empty store. A corrupt file is logged and
        also yields an empty store, so enrollment keeps working.

        Returns:
            Number of entries loaded.
        """
        with self._lock:
            if not self._path.exists():
                logger.info("No face database at %s, starting empty", self._path)
                self._entries = {}
                return 0

            try:
                self._entries = self._read(self._path)
            except (OSError, ValueError, TypeError, KeyError, EOFError, zipfile.BadZipFile) as exc:
                logger.warning("Could not load face database %s (%s), starting empty", self._path, exc)
                self._entries = {}
                return 0

            logger.info("Loaded face database: %d faces registered", len(self._entries))
            return len(self._entries)

    def put(self, identity: str, embedding: ArrayLike) -> None:
        """Insert or overwrite ``identity`` and persist the database.

        Raises:
            ShapeMismatchError: If the embedding length differs from the stored ones.
            StorageError: If the database could not be written. The entry is
                still present in memory.
        """
        vector = as_vector(embedding)
        vector.setflags(write=False)
        with self._lock:
            dim = self._dimension()
            if dim is not None and vector.shape[0] != dim:
                raise ShapeMismatchError(f"Embedding has {vector.shape[0]} dimensions, store holds {dim}")
            self._entries[identity] = vector
            self._persist()

    def get(self, identity: str) -> NDArray[np.float32] | None:
        with self._lock:
            vector = self._entries.get(identity)
            return None if vector is None else vector.copy()

    def all(self) -> dict[str, NDArray[np.float32]]:
        """Return a snapshot of every entry, in enrollment order."""
        with self._lock:
            return {name: vector.copy() for name, vector in self._entries.items()}

    def clear(self) -> None:
        """Remove every entry and persist the empty database.

        Raises:
            StorageError: If the empty database could not be written.
        """
        with self._lock:
            self._entries.clear()
            self._persist()
        logger.info("Face database cleared")

    def count(self) -> int:
        with self._lock:
            return len(self._entries)

    def __len__(self) -> int:
        return self.count()

    def __contains__(self, identity: object) -> bool:
        with self._lock:
            return identity in self._entries

    # -- Internal -----------------------------------------------------------

    def _dimension(self) -> int | None:
        for vector in self._entries.values():
            return int(vector.shape[0])
        return None

    @staticmethod
    def _read(path: Path) -> dict[str, NDArray[np.float32]]:
        data = np.load(path, allow_pickle=False)
        if not isinstance(data, np.lib.npyio.NpzFile):
            raise ValueError(f"expected an .npz archive, found {type(data).__name__}")
        with data:
            version = data["format_version"]
            if version.shape != () or int(version) != FORMAT_VERSION:
                raise ValueError(f"unsupported format version {version!r}")
            name_bytes = data["name_bytes"]
            offsets = data["name_offsets"]
            matrix = data["embeddings"]

        names = _decode_names(name_bytes, offsets)
        if names and (matrix.ndim != 2 or matrix.shape[0] != len(names)):
            raise ValueError("names and embeddings do not line up")

        entries: dict[str, NDArray[np.float32]] = {}
        for name, row in zip(names, matrix, strict=False):
            vector = np.array(row, dtype=np.float32)
            vector.setflags(write=False)
            entries[name] = vector
        return entries

    def _persist(self) -> None:
        # Caller holds self._lock.
        name_bytes, offsets = _encode_names(list(self._entries.keys()))
        if self._entries:
            matrix = np.stack(list(self._entries.values())).astype(np.float32, copy=False)
        else:
            matrix = np.zeros((0, 0), dtype=np.float32)

        tmp_name: str | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                np.savez(
                    tmp,
                    format_version=np.int64(FORMAT_VERSION),
                    name_bytes=name_bytes,
                    name_offsets=offsets,
                    embeddings=matrix,
                )
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, self._path)
            tmp_name = None
        except OSError as exc:
            logger.error("Failed to save face database to %s: %s", self._path, exc)
            raise StorageError(f"Failed to save face database: {exc}") from exc
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)

        logger.debug("Face database saved (%d faces)", len(self._entries))


# Names are kept as one UTF-8 blob plus row offsets. NumPy's fixed-width
# unicode arrays drop trailing NULs, which would merge "bob" and "bob\x00".


def _encode_names(names: list[str]) -> tuple[NDArray[np.uint8], NDArray[np.int64]]:
    encoded = [name.encode("utf-8", "surrogatepass") for name in names]
    offsets = np.zeros(len(encoded) + 1, dtype=np.int64)
    offsets[1:] = np.cumsum([len(raw) for raw in encoded], dtype=np.int64)
    return np.frombuffer(b"".join(encoded), dtype=np.uint8).copy(), offsets


def _decode_names(name_bytes: NDArray[np.uint8], offsets: NDArray[np.int64]) -> list[str]:
    if name_bytes.ndim != 1 or offsets.ndim != 1 or offsets.size == 0:
        raise ValueError("malformed name table")
    bounds = offsets.astype(np.int64).tolist()
    if bounds[0] != 0 or bounds[-1] != name_bytes.size or any(a > b for a, b in zip(bounds, bounds[1:])):
        raise ValueError("malformed name offsets")
    raw = name_bytes.astype(np.uint8).tobytes()
    return [raw[a:b].decode("utf-8", "surrogatepass") for a, b in zip(bounds, bounds[1:])]
