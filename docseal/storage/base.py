from abc import ABC, abstractmethod


def original_path(document_id: str) -> str:
    """Storage key of a document's uploaded bytes."""
    return f"originals/{document_id}.pdf"


def signed_path(document_id: str) -> str:
    """Storage key of a document's stamped artifact."""
    return f"signed/{document_id}.pdf"


class BaseObjectStorage(ABC):
    """Contract for object storage backends holding original and signed PDFs."""

    @abstractmethod
    def put(
        self,
        path: str,
        data: bytes,
        content_type: str,
        *,
        overwrite: bool = False,
    ) -> str:
        """Store ``data`` at ``path`` and return the path.

        Raises:
            ArtifactExistsError: if ``overwrite`` is False and the path exists.
            StorageError: on any other storage failure.
        """

    @abstractmethod
    def get(self, path: str) -> bytes:
        """Return the bytes stored at ``path``.

        Raises:
            StorageObjectMissingError: if nothing is stored at ``path``.
            StorageError: on any other storage failure.
        """

    @abstractmethod
    def delete(self, path: str) -> None:
        """Remove ``path``. Deleting a missing object succeeds.

        Raises:
            StorageError: on storage failure.
        """
