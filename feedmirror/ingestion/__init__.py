"""
FeedMirror Ingestion Module
===========================

Conditional feed fetching and RSS/Atom parsing.
"""
