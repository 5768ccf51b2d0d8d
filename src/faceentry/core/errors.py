"""Error taxonomy shared by the matching core, the model pipeline and the API."""

from __future__ import annotations


class FaceEntryError(Exception):
    """Base class for all FaceEntry errors.

    ``code`` is a stable machine-readable identifier that the API layer puts
    into error responses next to the human-readable message.
    """

    code: str = "face_entry_error"


class NoFaceDetectedError(FaceEntryError):
    """The detector found no usable face in the submitted image."""

    code = "no_face_detected"

    def __init__(self, message: str = "No face detected. Make sure the face is clearly visible and well-lit.") -> None:
        super().__init__(message)


class ModelUnavailableError(FaceEntryError):
    """The detection or embedding model failed to load or to run."""

    code = "model_unavailable"


class ShapeMismatchError(FaceEntryError, ValueError):
    """Two embeddings (or an embedding and the store) disagree on dimensionality."""

    code = "shape_mismatch"


class InvalidIdentityError(FaceEntryError, ValueError):
    """The identity supplied for enrollment is empty or missing."""

    code = "invalid_identity"


class InvalidImageError(FaceEntryError, ValueError):
    """The uploaded payload could not be decoded as an image or is too large."""

    code = "invalid_image"


class StorageError(FaceEntryError):
    """Persisting the face database failed.

    The in-memory database already reflects the requested change; only the
    on-disk copy may be stale.
    """

    code = "storage_error"
