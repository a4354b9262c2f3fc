"""Ingestion layer.

Turns decoded server messages into validated model records.  Only the
state/store layer holds the results.
"""
