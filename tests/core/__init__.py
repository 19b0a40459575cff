"""Tests for core components."""
