"""End-to-end tests with real PDFs, rendering and barcode decoding."""

from pathlib import Path

import pytest

from barsort.config import CollisionPolicy
from barsort.models import OutcomeStatus
from barsort.pipeline import DirectoryScanner, DocumentDisposer, DocumentPipeline

pytest.importorskip("barcode")


def _scanner(collision_policy=CollisionPolicy.ERROR):
    pipeline = DocumentPipeline(disposer=DocumentDisposer(collision_policy=collision_policy))
    return DirectoryScanner(pipeline=pipeline, max_workers=1, document_timeout=None)


def _leftover_jpegs(*folders):
    return [path for folder in folders for path in folder.glob("*.jpg")]


class TestEndToEnd:
    """Full scans over generated documents."""

    def test_round_trip(self, make_pdf, input_dir, output_dir):
        """A PDF with barcode V ends up at <output>/V.pdf."""
        make_pdf("scan_0001.pdf", barcode_text="INV-2024-0042")

        summary = _scanner().scan(input_dir, output_dir)

        (result,) = summary.results
        assert result.status == OutcomeStatus.RELOCATED
        assert result.barcode_text == "INV-2024-0042"
        assert (output_dir / "INV-2024-0042.pdf").exists()
        assert not (input_dir / "scan_0001.pdf").exists()

    def test_scenario_pdf_and_readme(self, make_pdf, input_dir, output_dir):
        make_pdf("doc1.pdf", barcode_text="ABC123")
        readme = input_dir / "readme.md"
        readme.write_text("# Scans\n")

        summary = _scanner().scan(input_dir, output_dir)

        assert (output_dir / "ABC123.pdf").exists()
        assert readme.read_text() == "# Scans\n"
        assert _leftover_jpegs(input_dir, output_dir) == []
        assert summary.relocated == 1
        assert summary.skipped == 1

    def test_decode_miss_leaves_file_untouched(self, make_pdf, input_dir, output_dir):
        source = make_pdf("blank.pdf")
        original = source.read_bytes()

        summary = _scanner().scan(input_dir, output_dir)

        assert summary.left_in_place == 1
        assert source.read_bytes() == original
        assert list(output_dir.iterdir()) == []
        assert _leftover_jpegs(input_dir) == []

    def test_cleanup_invariant_for_every_outcome(self, make_pdf, input_dir, output_dir):
        make_pdf("good.pdf", barcode_text="GOOD1")
        make_pdf("blank.pdf")
        (input_dir / "broken.pdf").write_bytes(b"not really a pdf")

        summary = _scanner().scan(input_dir, output_dir)

        assert summary.counts() == {
            "relocated": 1,
            "left_in_place": 1,
            "failed": 1,
            "cancelled": 0,
            "skipped": 0,
        }
        assert all(result.reached_cleanup for result in summary.results)
        assert _leftover_jpegs(input_dir, output_dir) == []

    def test_rescan_does_not_reprocess(self, make_pdf, input_dir, output_dir):
        make_pdf("doc1.pdf", barcode_text="ABC123")
        scanner = _scanner()

        scanner.scan(input_dir, output_dir)
        second = scanner.scan(input_dir, output_dir)

        assert second.processed == 0
        assert [p.name for p in output_dir.iterdir()] == ["ABC123.pdf"]

    def test_collision_error_policy(self, make_pdf, input_dir, output_dir):
        """The second document with the same value stays in the input folder."""
        make_pdf("doc1.pdf", barcode_text="ABC123")
        make_pdf("doc2.pdf", barcode_text="ABC123")

        summary = _scanner(CollisionPolicy.ERROR).scan(input_dir, output_dir)

        by_name = {Path(result.source_path).name: result for result in summary.results}
        assert by_name["doc1.pdf"].status == OutcomeStatus.RELOCATED
        assert by_name["doc2.pdf"].status == OutcomeStatus.FAILED
        assert by_name["doc2.pdf"].error_type == "DispositionError"
        assert (input_dir / "doc2.pdf").exists()
        assert _leftover_jpegs(input_dir) == []

    def test_collision_suffix_policy(self, make_pdf, input_dir, output_dir):
        make_pdf("doc1.pdf", barcode_text="ABC123")
        make_pdf("doc2.pdf", barcode_text="ABC123")

        summary = _scanner(CollisionPolicy.SUFFIX).scan(input_dir, output_dir)

        assert summary.relocated == 2
        assert sorted(p.name for p in output_dir.iterdir()) == ["ABC123.pdf", "ABC123_1.pdf"]
        assert list(input_dir.iterdir()) == []
