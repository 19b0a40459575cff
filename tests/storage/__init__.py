"""Tests for the record storage layer."""
