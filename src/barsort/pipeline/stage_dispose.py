"""Disposition Stage - File the document and remove the temporary artifact.

A decoded document is moved to ``<output>/<text>.pdf``; a document without
a barcode stays where it is. Decoded text is used as a file name only if it
is a single, plain path component; anything else is rejected.
"""

import errno
import os
import re
import shutil
from pathlib import Path
from typing import Optional

from barsort.config import CollisionPolicy, settings
from barsort.exceptions import CleanupError, DispositionError
from barsort.logging import get_logger
from barsort.models import PDF_SUFFIX, DecodeResult, ProcessingOutcome, SourceDocument

logger = get_logger(__name__)

# Path separators, Windows-reserved characters and control characters
UNSAFE_NAME_PATTERN = re.compile(r'[/\\<>:"|?*\x00-\x1f\x7f]')
MAX_SUFFIX_ATTEMPTS = 10_000


def validate_barcode_name(text: str) -> str:
    """Check that decoded text is usable as a file name.

    Args:
        text: Decoded barcode payload.

    Returns:
        The text unchanged.

    Raises:
        DispositionError: The text is blank, a relative path marker, or
            contains separators, reserved or control characters.
    """
    if not text or not text.strip():
        raise DispositionError("Decoded barcode text is empty")
    if text in (".", ".."):
        raise DispositionError(f"Decoded barcode text is not a file name: {text!r}")
    match = UNSAFE_NAME_PATTERN.search(text)
    if match:
        raise DispositionError(
            f"Decoded barcode text {text!r} contains unsafe character {match.group()!r}"
        )
    return text


def move_exclusive(source: Path, destination: Path) -> None:
    """Move a file without ever replacing an existing destination.

    Hard-links then unlinks the source; falls back to an exclusive copy when
    the folders are on different filesystems or links are unsupported. If the
    source cannot be removed afterwards, the new destination file is removed
    again so the document is only ever in one folder.

    Raises:
        FileExistsError: Destination already exists.
        OSError: Any other filesystem failure.
    """
    try:
        os.link(source, destination)
    except FileExistsError:
        raise
    except OSError as exc:
        if exc.errno not in (errno.EXDEV, errno.EPERM, errno.ENOTSUP, errno.EMLINK):
            raise
        _copy_exclusive(source, destination)

    try:
        os.unlink(source)
    except OSError:
        _rollback(destination)
        raise


def _copy_exclusive(source: Path, destination: Path) -> None:
    with open(source, "rb") as src:
        dst = open(destination, "xb")
        try:
            with dst:
                shutil.copyfileobj(src, dst)
            shutil.copystat(source, destination)
        except OSError:
            _rollback(destination)
            raise


def _rollback(destination: Path) -> None:
    """Remove a destination written by a move that did not complete."""
    try:
        os.unlink(destination)
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.error("Could not remove %s after a failed move: %s", destination, exc)


class DocumentDisposer:
    """Decides where a document goes and performs the move."""

    def __init__(self, collision_policy: Optional[CollisionPolicy] = None):
        """Initialize disposer.

        Args:
            collision_policy: Behavior when ``<text>.pdf`` already exists
                (default from settings).
        """
        self.collision_policy = CollisionPolicy(collision_policy or settings.collision_policy)

    def destination_for(self, text: str, output_folder: Path) -> Path:
        """Destination path for a decoded value, before collision handling."""
        return Path(output_folder) / f"{validate_barcode_name(text)}{PDF_SUFFIX}"

    def dispose(
        self,
        document: SourceDocument,
        result: DecodeResult,
        output_folder: Path,
    ) -> ProcessingOutcome:
        """Relocate or leave the document according to the decode result.

        Args:
            document: Source PDF.
            result: Decode result for its first page.
            output_folder: Folder receiving relocated documents.

        Returns:
            Relocated or left-in-place outcome.

        Raises:
            DispositionError: The decoded text is unsafe, the destination
                exists under the ``error`` policy, or the move failed.
        """
        source = document.source_path_obj

        if not result.found:
            logger.info("Could not read barcode from %s, leaving it in place", source)
            return ProcessingOutcome.left_in_place(result.reason or "no barcode read")

        try:
            destination = self.destination_for(result.text, output_folder)
        except DispositionError as exc:
            exc.path = source
            raise

        if self.collision_policy == CollisionPolicy.SUFFIX:
            destination = self._move_with_suffix(source, destination)
        else:
            self._move(source, destination)

        logger.info("%s -> %s", source, destination)
        return ProcessingOutcome.relocated(str(destination))

    def _move(self, source: Path, destination: Path) -> None:
        try:
            move_exclusive(source, destination)
        except FileExistsError as exc:
            raise DispositionError(
                f"Destination already exists: {destination}", path=source
            ) from exc
        except OSError as exc:
            raise DispositionError(
                f"Cannot move {source} to {destination}: {exc}", path=source
            ) from exc

    def _move_with_suffix(self, source: Path, destination: Path) -> Path:
        """Move to the first free name among ``X.pdf``, ``X_1.pdf``, ``X_2.pdf``..."""
        candidate = destination
        for attempt in range(1, MAX_SUFFIX_ATTEMPTS + 1):
            try:
                move_exclusive(source, candidate)
                return candidate
            except FileExistsError:
                candidate = destination.with_name(f"{destination.stem}_{attempt}{PDF_SUFFIX}")
            except OSError as exc:
                raise DispositionError(
                    f"Cannot move {source} to {candidate}: {exc}", path=source
                ) from exc

        raise DispositionError(
            f"No free destination name for {destination} after {MAX_SUFFIX_ATTEMPTS} attempts",
            path=source,
        )

    def cleanup(self, artifact_path: Path) -> bool:
        """Delete the temporary raster artifact.

        Never raises; failures are logged.

        Returns:
            True if the artifact no longer exists.
        """
        try:
            self._remove_artifact(Path(artifact_path))
        except CleanupError as exc:
            logger.warning("There was an error deleting %s: %s", artifact_path, exc)
            return False
        logger.debug("Deleted temporary file %s", artifact_path)
        return True

    def _remove_artifact(self, artifact_path: Path) -> None:
        try:
            artifact_path.unlink(missing_ok=True)
        except OSError as exc:
            raise CleanupError(str(exc), path=artifact_path) from exc
