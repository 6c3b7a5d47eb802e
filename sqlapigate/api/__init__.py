"""Transport adapters (stdio and HTTP) over the shared dispatch core."""
