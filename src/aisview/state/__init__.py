"""State layer.

Holds the connection state machine, the observability event records and
the target store, the single place where decoded snapshots are kept for
rendering.
"""
