"""State/store layer.

This package is the single source of truth for the snapshots consumers
read, whichever input path (broker push or REST polling) produced them.
"""
