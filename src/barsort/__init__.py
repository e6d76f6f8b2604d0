"""Barcode Sorter - file scanned PDFs by the barcode on their first page."""

__version__ = "0.1.0"
