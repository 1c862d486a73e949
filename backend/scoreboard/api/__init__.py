"""HTTP API blueprints mounted under /api."""
