"""Append-only event log and read-only analytics over it."""
