"""Scrape multiple-choice exam questions from rendered pages into JSON records."""

__version__ = "0.1.0"
