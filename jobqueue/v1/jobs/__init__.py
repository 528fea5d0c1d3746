"""
Job queue and execution engine.

This package provides:
- Persisted job records with a pending/running/done/error lifecycle
- A write-once registry dispatching jobs to handlers by kind
- A polling runner executing batches of jobs under a concurrency limit
- HTTP endpoints for producers and observers
"""
