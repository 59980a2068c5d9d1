"""API routes for the knowledge gateway."""
