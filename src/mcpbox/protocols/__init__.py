"""Protocol layer — wire models, framing, stdio transport and client."""
