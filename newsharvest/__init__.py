"""
Resilient news article harvester.

This package loads a news site's listing page in a browser, finds articles
through ordered selector cascades, fetches each article with retries and
per-article failure isolation, enriches the records and writes them as JSON
and CSV.

Selector catalogs are configuration (see newsharvest.presets); the pipeline
itself is site-agnostic.
"""
