"""Tests for fitcal."""
