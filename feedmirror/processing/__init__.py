"""
FeedMirror Processing Module
============================

Item transformation (sanitizing, title formatting, content addressing),
manifest building and the sync pipeline orchestrator.
"""
