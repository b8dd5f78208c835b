"""
Audiobook catalog crawler.

This package walks the paginated search results of an audiobook catalog and
extracts typed records from each page, with a clean separation between
fetching (request managers), traversal (drivers) and parsing (page parser
plus extraction rules).
"""
