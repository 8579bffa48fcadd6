"""Shared helpers for paths, jar containers, argfiles, and the run lock."""
