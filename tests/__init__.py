"""Tests for the record layer."""
