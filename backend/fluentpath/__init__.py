"""FluentPath learning core backend."""
