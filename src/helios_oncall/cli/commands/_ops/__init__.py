"""Non-IO helpers shared by the CLI command wrappers."""
