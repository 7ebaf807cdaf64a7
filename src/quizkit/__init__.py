"""Timed quiz authoring, taking and scoring for the terminal."""
