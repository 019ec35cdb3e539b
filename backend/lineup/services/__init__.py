"""Domain services used by the API routes and background jobs."""
