"""Output layer — adapts ServiceResult to human, quiet, or JSON output."""
