"""Custom resource runtimes executed inside the helper Lambda functions."""
