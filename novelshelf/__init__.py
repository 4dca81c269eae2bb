"""novelshelf: batch scraper and cleaner for web-novel chapters."""

__version__ = "0.1.0"
