"""Buddy Study Companion backend."""
