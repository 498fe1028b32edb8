"""Shared test support: fakes for logspine collaborators."""
