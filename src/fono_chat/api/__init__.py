"""HTTP API for the Fono chat backend."""
