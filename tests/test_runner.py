"""Tests for the per-document pipeline."""

import threading
from unittest.mock import MagicMock

import pytest

from barsort.exceptions import DispositionError, RenderError
from barsort.models import (
    DecodeResult,
    DocumentState,
    OutcomeStatus,
    PreprocessedImage,
    ProcessingOutcome,
    RenderedPage,
)
from barsort.pipeline.runner import DocumentPipeline
from barsort.pipeline.stage_dispose import DocumentDisposer

ALL_STATES = [
    DocumentState.DISCOVERED,
    DocumentState.RENDERED,
    DocumentState.PREPROCESSED,
    DocumentState.DECODED,
    DocumentState.DISPOSED,
    DocumentState.CLEANED_UP,
]


@pytest.fixture
def source(input_dir):
    path = input_dir / "doc1.pdf"
    path.write_bytes(b"%PDF-1.4")
    return path


@pytest.fixture
def stages(source):
    """Mocked stages that write the artifact like the real renderer."""
    artifact = source.with_suffix(".jpg")

    def render(document):
        artifact.write_bytes(b"jpeg")
        return RenderedPage(image_path=str(artifact), width_pixels=10, height_pixels=10)

    renderer = MagicMock()
    renderer.render_first_page.side_effect = render
    preprocessor = MagicMock()
    preprocessor.process.return_value = PreprocessedImage(
        image_path=str(artifact), width_pixels=3072, height_pixels=615
    )
    decoder = MagicMock()
    decoder.decode.return_value = DecodeResult.decoded("Code128", "ABC123")
    disposer = MagicMock(wraps=DocumentDisposer())
    return renderer, preprocessor, decoder, disposer


@pytest.fixture
def pipeline(stages):
    renderer, preprocessor, decoder, disposer = stages
    return DocumentPipeline(renderer, preprocessor, decoder, disposer)


class TestDocumentPipeline:
    """Tests for DocumentPipeline."""

    def test_relocated_document(self, pipeline, source, output_dir):
        result = pipeline.run(source, output_dir)

        assert result.status == OutcomeStatus.RELOCATED
        assert result.destination_path == str(output_dir / "ABC123.pdf")
        assert result.symbology == "Code128"
        assert result.barcode_text == "ABC123"
        assert result.states == ALL_STATES
        assert result.artifact_removed
        assert not source.with_suffix(".jpg").exists()

    def test_each_stage_gets_previous_output(self, pipeline, stages, source, output_dir):
        renderer, preprocessor, decoder, disposer = stages

        pipeline.run(source, output_dir)

        rendered = renderer.render_first_page.call_args
        preprocessor.process.assert_called_once()
        decoder.decode.assert_called_once_with(preprocessor.process.return_value)
        assert rendered.args[0].source_path == str(source)

    def test_decode_miss_leaves_file(self, pipeline, stages, source, output_dir):
        _, _, decoder, _ = stages
        decoder.decode.return_value = DecodeResult.not_found()

        result = pipeline.run(source, output_dir)

        assert result.status == OutcomeStatus.LEFT_IN_PLACE
        assert result.states == ALL_STATES
        assert source.exists()
        assert not source.with_suffix(".jpg").exists()

    def test_render_error_is_scoped_to_document(self, pipeline, stages, source, output_dir):
        """A partially written artifact is still cleaned up."""
        renderer, _, _, _ = stages

        def fail(document):
            source.with_suffix(".jpg").write_bytes(b"partial")
            raise RenderError("cannot render", path=source)

        renderer.render_first_page.side_effect = fail

        result = pipeline.run(source, output_dir)

        assert result.status == OutcomeStatus.FAILED
        assert result.error_type == "RenderError"
        assert result.states == [DocumentState.DISCOVERED, DocumentState.CLEANED_UP]
        assert result.reached_cleanup
        assert not source.with_suffix(".jpg").exists()
        assert source.exists()

    def test_disposition_error_still_cleans_up(self, pipeline, stages, source, output_dir):
        _, _, _, disposer = stages
        disposer.dispose.side_effect = DispositionError("destination exists", path=source)

        result = pipeline.run(source, output_dir)

        assert result.status == OutcomeStatus.FAILED
        assert result.error_type == "DispositionError"
        assert result.states[-1] == DocumentState.CLEANED_UP
        assert DocumentState.DISPOSED not in result.states
        assert result.artifact_removed

    def test_unexpected_error_is_contained(self, pipeline, stages, source, output_dir):
        _, _, decoder, _ = stages
        decoder.decode.side_effect = MemoryError("image too large")

        result = pipeline.run(source, output_dir)

        assert result.status == OutcomeStatus.FAILED
        assert result.error_type == "MemoryError"
        assert result.reached_cleanup

    def test_preexisting_artifact_is_not_deleted(self, pipeline, stages, source, output_dir):
        """A user's own file at <name>.jpg survives a failed render."""
        renderer, _, _, _ = stages
        renderer.render_first_page.side_effect = RenderError("refusing to overwrite")
        existing = source.with_suffix(".jpg")
        existing.write_bytes(b"holiday photo")

        result = pipeline.run(source, output_dir)

        assert result.status == OutcomeStatus.FAILED
        assert existing.read_bytes() == b"holiday photo"

    def test_cleanup_failure_is_reported_not_raised(self, pipeline, stages, source, output_dir):
        _, _, _, disposer = stages
        disposer.cleanup = MagicMock(return_value=False)
        disposer.dispose.return_value = ProcessingOutcome.left_in_place("no barcode read")

        result = pipeline.run(source, output_dir)

        assert result.status == OutcomeStatus.LEFT_IN_PLACE
        assert result.artifact_removed is False
        assert result.reached_cleanup

    def test_commit_lock_is_held_during_disposition(self, pipeline, stages, source, output_dir):
        _, _, _, disposer = stages
        lock = threading.Lock()
        held = []

        def dispose(document, decoded, output_folder):
            held.append(lock.locked())
            return ProcessingOutcome.left_in_place("no barcode read")

        disposer.dispose.side_effect = dispose

        result = pipeline.run(source, output_dir, commit_lock=lock)

        assert held == [True]
        assert result.status == OutcomeStatus.LEFT_IN_PLACE
        assert result.reached_cleanup

    def test_commit_lock_not_taken_when_render_fails(self, pipeline, stages, source, output_dir):
        renderer, _, _, _ = stages
        renderer.render_first_page.side_effect = RenderError("cannot render")
        lock = threading.Lock()

        pipeline.run(source, output_dir, commit_lock=lock)

        assert not lock.locked()
