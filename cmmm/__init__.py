"""
Client SDK for constant-mean-market-maker (CMMM) pools: bundle assembly,
indexer access and pool analytics.
"""

__version__ = "0.1.0"
