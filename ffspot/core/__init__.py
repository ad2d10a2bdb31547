"""
Core application engine for orchestrating the output pipeline.

This package contains the primary logic. The `DownloadSession` lists the
tracks of a source and hands them to the `QueueCoordinator`, which numbers
them and runs each one through the `TrackProcessor` on a bounded worker pool.
"""
