"""Scheduled background jobs: definitions and runner."""
