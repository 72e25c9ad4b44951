"""External integrations (GitHub) built on BaseIntegration."""
