"""TrailSifter application layer (services, CLI and GUI)."""
