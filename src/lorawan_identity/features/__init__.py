"""Features of the identity server."""
