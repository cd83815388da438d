"""
PDF Service - Web page to PDF conversion.

Renders web pages in a shared Playwright/Chromium instance and returns a PDF,
or a ZIP of PDFs when several URLs are converted together.
"""

__version__ = "0.1.0"
