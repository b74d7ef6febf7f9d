"""
Shared helpers for text normalization, similarity and grouping.
"""
