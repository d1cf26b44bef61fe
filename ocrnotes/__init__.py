"""OCR Notes.

A small web service that extracts text from uploaded images with Mistral OCR
and keeps the results as per-user markdown documents.
"""

__version__ = "1.0.0"
