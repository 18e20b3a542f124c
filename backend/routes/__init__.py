"""HTTP routes: the /api/v1 catalog API and the /relay playlist and segment endpoints."""
