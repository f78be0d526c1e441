"""Evaluation and visualization tooling for face landmark alignment."""
