"""
Currents Reader Backend

Feed ingestion for the Currents reader: feed sync, article
normalization, content extraction and retention.
"""

__version__ = "1.0.0"
