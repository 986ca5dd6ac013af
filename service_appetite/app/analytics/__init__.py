"""
Analytics package.

Append-only event log for telemetry and checker notifications, plus
aggregate snapshots over events, submissions and the catalog.
"""
