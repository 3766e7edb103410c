"""HTTP server, configuration and the backup job queue."""
