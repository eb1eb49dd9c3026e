"""Scraper execution: fetching pages and extracting structured data.

Sub-modules:
- ``config``           — constants shared by the clients and parsers
- ``http_client``      — retrying httpx and Playwright page fetchers
- ``extraction``       — HTML, Markdown and JSON parsers driven by parsing models
- ``client_registry``  — builds HTTP clients from stored or ad hoc definitions
- ``executor``         — the stored and dynamic execution pipeline
- ``router``           — scraper CRUD and execute routes
"""
