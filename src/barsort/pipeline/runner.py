"""Per-document pipeline: render -> preprocess -> decode -> dispose -> cleanup."""

from pathlib import Path
from typing import Optional

from barsort.exceptions import BarsortError
from barsort.logging import get_logger
from barsort.models import (
    DocumentResult,
    DocumentState,
    OutcomeStatus,
    SourceDocument,
)
from barsort.pipeline.stage_decode import BarcodeDecoder
from barsort.pipeline.stage_dispose import DocumentDisposer
from barsort.pipeline.stage_preprocess import ImagePreprocessor
from barsort.pipeline.stage_render import PDFRenderer

logger = get_logger(__name__)


class DocumentPipeline:
    """Runs every stage for one document and always removes the artifact.

    Failures are scoped to the document: they come back as a ``failed``
    result instead of propagating, so a batch can continue.
    """

    def __init__(
        self,
        renderer: Optional[PDFRenderer] = None,
        preprocessor: Optional[ImagePreprocessor] = None,
        decoder: Optional[BarcodeDecoder] = None,
        disposer: Optional[DocumentDisposer] = None,
    ):
        self.renderer = renderer or PDFRenderer()
        self.preprocessor = preprocessor or ImagePreprocessor()
        self.decoder = decoder or BarcodeDecoder()
        self.disposer = disposer or DocumentDisposer()

    def run(self, source: Path, output_folder: Path, commit_lock=None) -> DocumentResult:
        """Process one PDF.

        Args:
            source: Path to the PDF.
            output_folder: Folder receiving relocated documents.
            commit_lock: Optional lock acquired, and never released, right
                before disposition. A supervisor that wins the lock first
                may stop the run knowing nothing has been moved; once the
                run holds it, the run is left to finish.

        Returns:
            DocumentResult whose ``states`` always end with ``cleaned_up``.
            ``artifact_removed`` is True when no temporary file created by
            this run remains.
        """
        document = SourceDocument.from_path(Path(source))
        artifact = document.artifact_path
        result = DocumentResult(
            source_path=document.source_path,
            status=OutcomeStatus.FAILED,
            states=[DocumentState.DISCOVERED],
        )
        # A file already sitting at the artifact path is not ours to delete
        owns_artifact = not artifact.exists()

        try:
            self._process(document, Path(output_folder), result, commit_lock)
        except BarsortError as exc:
            logger.error("%s: %s", type(exc).__name__, exc)
            self._mark_failed(result, exc)
        except Exception as exc:
            logger.exception("Unexpected error processing %s", document.source_path)
            self._mark_failed(result, exc)
        finally:
            result.artifact_removed = self.disposer.cleanup(artifact) if owns_artifact else True
            result.states.append(DocumentState.CLEANED_UP)

        return result

    def _process(
        self,
        document: SourceDocument,
        output_folder: Path,
        result: DocumentResult,
        commit_lock=None,
    ) -> None:
        logger.info("Processing %s", document.source_path)

        rendered = self.renderer.render_first_page(document)
        result.states.append(DocumentState.RENDERED)

        preprocessed = self.preprocessor.process(rendered)
        result.states.append(DocumentState.PREPROCESSED)

        decoded = self.decoder.decode(preprocessed)
        result.states.append(DocumentState.DECODED)
        result.symbology = decoded.symbology
        result.barcode_text = decoded.text

        if commit_lock is not None:
            commit_lock.acquire()
        outcome = self.disposer.dispose(document, decoded, output_folder)
        result.states.append(DocumentState.DISPOSED)
        result.status = outcome.status
        result.destination_path = outcome.destination_path
        result.reason = outcome.reason

    @staticmethod
    def _mark_failed(result: DocumentResult, exc: Exception) -> None:
        result.status = OutcomeStatus.FAILED
        result.error_type = type(exc).__name__
        result.reason = str(exc)
